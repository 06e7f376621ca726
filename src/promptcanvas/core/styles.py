"""Style catalog for prompt composition.

A fixed table of artistic styles offered to the user.  Each entry has a
``value`` (the text injected into the prompt), a display ``label``, a short
``description``, and exactly one ``category``.

The catalog is static data: lookups are pure and there is nothing to
configure.  Unknown identifiers simply return ``None``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal

StyleCategory = Literal["artistic", "photographic", "digital", "illustration", "traditional"]

#: Category names in display order.
CATEGORIES: tuple[str, ...] = (
    "artistic",
    "photographic",
    "digital",
    "illustration",
    "traditional",
)

#: Sentinel style identifier meaning "no style".
NO_STYLE = "none"


@dataclass(frozen=True)
class StyleOption:
    """A single catalog entry."""

    value: str
    label: str
    description: str
    category: StyleCategory

    def to_dict(self) -> dict:
        return asdict(self)


STYLES: tuple[StyleOption, ...] = (
    StyleOption(
        "photorealistic",
        "Photorealistic",
        "Highly detailed image that looks like a photograph",
        "photographic",
    ),
    StyleOption(
        "cinematic",
        "Cinematic",
        "Movie-like quality with dramatic lighting and composition",
        "photographic",
    ),
    StyleOption(
        "anime",
        "Anime",
        "Japanese animation style with clean lines and expressive features",
        "illustration",
    ),
    StyleOption(
        "digital art",
        "Digital Art",
        "Modern digital painting with vibrant colors",
        "digital",
    ),
    StyleOption(
        "oil painting",
        "Oil Painting",
        "Traditional oil painting technique with rich textures",
        "traditional",
    ),
    StyleOption(
        "watercolor",
        "Watercolor",
        "Soft, transparent watercolor painting style",
        "traditional",
    ),
    StyleOption(
        "pixel art",
        "Pixel Art",
        "Retro video game style with visible pixels",
        "digital",
    ),
    StyleOption(
        "comic book",
        "Comic Book",
        "Bold outlines and vibrant colors like a comic book",
        "illustration",
    ),
    StyleOption(
        "cyberpunk",
        "Cyberpunk",
        "Futuristic dystopian aesthetic with neon lights",
        "digital",
    ),
    StyleOption(
        "steampunk",
        "Steampunk",
        "Victorian-era sci-fi with brass machinery and steam power",
        "artistic",
    ),
    StyleOption(
        "fantasy",
        "Fantasy",
        "Magical and mythical elements in a fantastical setting",
        "artistic",
    ),
    StyleOption(
        "sketch",
        "Sketch",
        "Hand-drawn pencil or ink sketch style",
        "traditional",
    ),
    StyleOption(
        "3D rendering",
        "3D Rendering",
        "Computer-generated 3D model with realistic lighting",
        "digital",
    ),
    StyleOption(
        "vaporwave",
        "Vaporwave",
        "Retro aesthetic with pink and blue gradients",
        "digital",
    ),
    StyleOption(
        "abstract",
        "Abstract",
        "Non-representational art focusing on colors, shapes, and textures",
        "artistic",
    ),
    StyleOption(
        "impressionist",
        "Impressionist",
        "Loose brushstrokes capturing light and atmosphere",
        "traditional",
    ),
    StyleOption(
        "pop art",
        "Pop Art",
        "Bold colors and popular culture imagery like Warhol",
        "artistic",
    ),
    StyleOption(
        "minimalist",
        "Minimalist",
        "Simple, clean design with minimal elements",
        "artistic",
    ),
    StyleOption(
        "isometric",
        "Isometric",
        "3D objects presented in isometric perspective",
        "digital",
    ),
    StyleOption(
        "studio ghibli",
        "Studio Ghibli",
        "Whimsical style inspired by Studio Ghibli animations",
        "illustration",
    ),
)

_STYLES_BY_VALUE: dict[str, StyleOption] = {style.value: style for style in STYLES}


def lookup(style_id: str) -> StyleOption | None:
    """Return the catalog entry for *style_id*, or ``None`` if unknown.

    The ``"none"`` sentinel is not a catalog entry and also returns ``None``.
    """
    return _STYLES_BY_VALUE.get(style_id)


def list_styles() -> list[StyleOption]:
    """Return every catalog entry in catalog order."""
    return list(STYLES)


def styles_by_category() -> dict[str, list[StyleOption]]:
    """Group the catalog by category.

    Categories appear in the order of their first catalog entry, and entries
    keep catalog order within each group.
    """
    grouped: dict[str, list[StyleOption]] = {}
    for style in STYLES:
        grouped.setdefault(style.category, []).append(style)
    return grouped
