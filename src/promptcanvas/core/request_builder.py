"""Request shaping for Stability SDXL invocations.

This module turns the user's choices (prompt, style, aspect ratio, reference
image, and how the reference should be used) into the request bodies sent to
the text-to-image model.  It is a pure transformation: nothing here touches
the network.

Dimension Table
---------------
========  =====  ======
Ratio     Width  Height
========  =====  ======
1:1       1024   1024
16:9      1024   576
9:16      576    1024
4:3       1024   768
3:4       768    1024
========  =====  ======

Any other ratio falls back to 1:1.

Reference Conditioning
----------------------
A reference image only influences generation when at least one of the two
usage flags is set.  The flags select the image strength:

- content and style: 0.5
- content only: 0.7
- style only: 0.3

Supplying an image with neither flag set is a no-op.

Seeds
-----
Every payload in a batch draws its own seed uniformly from ``[0, 2**32 - 1]``.
Images in one batch share all other parameters but never a seed by
construction.
"""

from __future__ import annotations

import base64
import binascii
import random
from dataclasses import dataclass, field

from promptcanvas.core.errors import MalformedReferenceImage, ValidationError
from promptcanvas.core.prompt import compose
from promptcanvas.core.styles import NO_STYLE

# ---------------------------------------------------------------------------
# Fixed invocation parameters.
# ---------------------------------------------------------------------------
PROMPT_WEIGHT = 1.0
CFG_SCALE = 8
STEPS = 50
MAX_SEED = 2**32 - 1

MIN_IMAGES = 1
MAX_IMAGES = 3

DEFAULT_ASPECT_RATIO = "1:1"

#: Aspect ratio label -> (width, height).
DIMENSIONS: dict[str, tuple[int, int]] = {
    "1:1": (1024, 1024),
    "16:9": (1024, 576),
    "9:16": (576, 1024),
    "4:3": (1024, 768),
    "3:4": (768, 1024),
}

#: Media types accepted for reference images.
REFERENCE_MEDIA_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/webp"})

_STRENGTH_BOTH = 0.5
_STRENGTH_CONTENT = 0.7
_STRENGTH_STYLE = 0.3


@dataclass(frozen=True)
class GenerationRequest:
    """Everything the user chose for one generation call.

    Attributes:
        prompt_text: The user's prompt.
        image_count: Requested number of images; clamped to 1-3 when built.
        aspect_ratio: Aspect ratio label such as ``"16:9"``.
        style_id: Style identifier, or ``"none"``.
        reference_image: Optional ``data:<type>;base64,<payload>`` URL.
        use_reference_content: Condition on the reference image's content.
        use_reference_style: Condition on the reference image's style.
    """

    prompt_text: str
    image_count: int = 1
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    style_id: str = NO_STYLE
    reference_image: str | None = None
    use_reference_content: bool = False
    use_reference_style: bool = False

    @property
    def uses_reference(self) -> bool:
        """True when the reference image will actually condition generation."""
        return bool(self.reference_image) and (
            self.use_reference_content or self.use_reference_style
        )


@dataclass(frozen=True)
class ModelInvocationPayload:
    """One fully-formed model invocation.

    ``init_image`` and ``image_strength`` are either both set or both
    ``None``.
    """

    text: str
    width: int
    height: int
    seed: int
    weight: float = PROMPT_WEIGHT
    cfg_scale: int = CFG_SCALE
    steps: int = STEPS
    init_image: str | None = field(default=None, repr=False)
    image_strength: float | None = None

    def to_request_body(self) -> dict:
        """Serialise to the Stability request body expected by Bedrock."""
        body: dict = {
            "text_prompts": [{"text": self.text, "weight": self.weight}],
            "cfg_scale": self.cfg_scale,
            "height": self.height,
            "width": self.width,
            "steps": self.steps,
            "seed": self.seed,
        }
        if self.init_image is not None:
            body["init_image"] = self.init_image
            body["image_strength"] = self.image_strength
        return body


def clamp_image_count(image_count: int) -> int:
    """Clamp a requested image count to the supported 1-3 range."""
    return min(max(image_count, MIN_IMAGES), MAX_IMAGES)


def resolve_dimensions(aspect_ratio: str) -> tuple[int, int]:
    """Return ``(width, height)`` for *aspect_ratio*, defaulting to 1:1."""
    return DIMENSIONS.get(aspect_ratio, DIMENSIONS[DEFAULT_ASPECT_RATIO])


def reference_strength(use_content: bool, use_style: bool) -> float | None:
    """Return the image strength for the given usage flags.

    Returns ``None`` when neither flag is set, meaning no conditioning.
    """
    if use_content and use_style:
        return _STRENGTH_BOTH
    if use_content:
        return _STRENGTH_CONTENT
    if use_style:
        return _STRENGTH_STYLE
    return None


def split_data_url(data_url: str) -> tuple[str, str]:
    """Split a data-URL into its header and base64 payload.

    Args:
        data_url: A value such as ``"data:image/png;base64,iVBORw0..."``.

    Returns:
        Tuple of ``(header, payload)``; the header is everything before the
        first comma.

    Raises:
        MalformedReferenceImage: If there is no comma separator or the
            payload is empty or not valid base64.
    """
    header, sep, payload = data_url.partition(",")
    if not sep:
        raise MalformedReferenceImage("Reference image must be a base64 data URL")
    payload = payload.strip()
    if not payload:
        raise MalformedReferenceImage("Reference image data is empty")
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedReferenceImage("Reference image is not valid base64 data") from exc
    return header, payload


def strip_data_url(data_url: str) -> str:
    """Return only the base64 payload of a data-URL."""
    return split_data_url(data_url)[1]


def validate_reference_image(data_url: str, max_bytes: int) -> None:
    """Check a reference image's media type and decoded size.

    Args:
        data_url: The reference image data-URL.
        max_bytes: Largest accepted decoded size in bytes.

    Raises:
        MalformedReferenceImage: If the data-URL cannot be decoded.
        ValidationError: If the media type is unsupported or the image is
            too large.
    """
    header, payload = split_data_url(data_url)
    media_type = header.removeprefix("data:").split(";", 1)[0].strip().lower()
    if media_type not in REFERENCE_MEDIA_TYPES:
        allowed = ", ".join(sorted(REFERENCE_MEDIA_TYPES))
        raise ValidationError(f"Reference image must be one of: {allowed}")

    decoded_size = len(base64.b64decode(payload))
    if decoded_size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ValidationError(f"Reference image must be smaller than {limit_mb:g}MB")


def build_payloads(
    request: GenerationRequest,
    rng: random.Random | None = None,
) -> list[ModelInvocationPayload]:
    """Build one invocation payload per requested image.

    Args:
        request: The user's generation choices.
        rng: Optional random source for seeds.  Defaults to the module-level
            ``random`` functions.

    Returns:
        ``clamp_image_count(request.image_count)`` payloads with identical
        parameters apart from their independently drawn seeds.

    Raises:
        MalformedReferenceImage: If reference conditioning is requested and
            the reference image cannot be decoded.
    """
    randint = rng.randint if rng is not None else random.randint
    text = compose(request.prompt_text, request.style_id)
    width, height = resolve_dimensions(request.aspect_ratio)

    init_image: str | None = None
    image_strength: float | None = None
    if request.uses_reference:
        init_image = strip_data_url(request.reference_image)
        image_strength = reference_strength(
            request.use_reference_content, request.use_reference_style
        )

    return [
        ModelInvocationPayload(
            text=text,
            width=width,
            height=height,
            seed=randint(0, MAX_SEED),
            init_image=init_image,
            image_strength=image_strength,
        )
        for _ in range(clamp_image_count(request.image_count))
    ]
