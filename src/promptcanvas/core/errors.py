"""Exception hierarchy for PromptCanvas.

Every error raised deliberately by the core derives from
:class:`PromptCanvasError` and carries the HTTP status code the API layer
should answer with.  The message is always safe to show to the caller.
"""

from __future__ import annotations


class PromptCanvasError(Exception):
    """Base class for all PromptCanvas errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PromptCanvasError):
    """Missing or invalid input, rejected before any external call."""

    status_code = 400


class MalformedReferenceImage(ValidationError):
    """The reference image data-URL cannot be split or decoded."""


class UpstreamGenerationError(PromptCanvasError):
    """The text-to-image model call failed (network, auth, bad JSON)."""

    status_code = 502


class PersistenceError(PromptCanvasError):
    """A prompt store read or write failed."""

    status_code = 500
