"""Concurrent fan-out of model invocations.

A batch of up to three images is produced by issuing one model call per
payload.  The calls are independent, so they run concurrently: each
synchronous :meth:`ImageModel.invoke` is pushed to a worker thread and the
threads are joined with :func:`asyncio.gather`, which returns results in
argument order regardless of completion order.

Response shapes vary.  A response without an artifact produces an empty
string for that slot instead of failing the batch.  A call that raises fails
the whole batch; there are no retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from promptcanvas.core.errors import UpstreamGenerationError
from promptcanvas.core.model_client import ImageModel
from promptcanvas.core.request_builder import ModelInvocationPayload

logger = logging.getLogger(__name__)


def extract_first_artifact(response: Any) -> str:
    """Return the base64 data of the first artifact, or ``""``.

    Args:
        response: Decoded model response, expected to look like
            ``{"artifacts": [{"base64": "..."}]}``.

    Returns:
        The first artifact's base64 string, or an empty string when the
        response has no usable artifact.
    """
    if not isinstance(response, dict):
        return ""
    artifacts = response.get("artifacts")
    if not isinstance(artifacts, list) or not artifacts:
        return ""
    first = artifacts[0]
    if not isinstance(first, dict):
        return ""
    data = first.get("base64")
    return data if isinstance(data, str) else ""


async def _invoke_one(model: ImageModel, index: int, payload: ModelInvocationPayload) -> str:
    response = await asyncio.to_thread(model.invoke, payload.to_request_body())
    image = extract_first_artifact(response)
    if not image:
        logger.warning("Model response for image %d contained no artifact", index)
    return image


async def generate_images(
    model: ImageModel,
    payloads: Sequence[ModelInvocationPayload],
) -> list[str]:
    """Run every payload concurrently and collect one image per payload.

    Args:
        model: The model client.
        payloads: Invocation payloads, typically from
            :func:`~promptcanvas.core.request_builder.build_payloads`.

    Returns:
        Base64 image strings; index *i* belongs to ``payloads[i]``.  Slots
        whose response had no artifact hold ``""``.

    Raises:
        UpstreamGenerationError: If any model call fails.
    """
    logger.info("Dispatching %d model invocation(s)", len(payloads))
    try:
        return list(
            await asyncio.gather(
                *(_invoke_one(model, i, payload) for i, payload in enumerate(payloads))
            )
        )
    except UpstreamGenerationError:
        raise
    except Exception as exc:
        raise UpstreamGenerationError(str(exc) or "Failed to generate images") from exc
