"""Pydantic request and response models for the PromptCanvas API.

These models define the JSON schema for every API endpoint.  Field names on
the wire are camelCase (``aspectRatio``, ``useReferenceContent``) to match
the browser client; the Python attributes are snake_case.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
GenerateResponse
    Response of ``POST /api/generate``.
PromptHistoryResponse
    Response of ``GET /api/prompts``.
ErrorResponse
    Body of every non-2xx response.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from promptcanvas.core.history import HistoryPage
from promptcanvas.core.request_builder import DEFAULT_ASPECT_RATIO, GenerationRequest
from promptcanvas.core.styles import NO_STYLE


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        prompt: The text prompt.  Length is checked by the route against
            ``config.min_prompt_length``.
        count: Number of images.  Values outside 1-3 are clamped, not
            rejected.
        aspect_ratio: Aspect ratio label; unknown labels fall back to 1:1.
        style: Style identifier, or ``"none"``.
        reference_image: Optional ``data:`` URL of a reference image.  An
            empty string is treated as no image.
        use_reference_content: Condition on the reference image's content.
        use_reference_style: Condition on the reference image's style.
    """

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., description="Text prompt for the image.")
    count: int = Field(default=1, description="Number of images (clamped to 1-3).")
    aspect_ratio: str = Field(
        default=DEFAULT_ASPECT_RATIO,
        alias="aspectRatio",
        description="Aspect ratio label, e.g. '16:9'.",
    )
    style: str = Field(default=NO_STYLE, description="Style identifier or 'none'.")
    reference_image: str | None = Field(
        default=None,
        alias="referenceImage",
        description="Optional reference image as a base64 data URL.",
    )
    use_reference_content: bool = Field(default=False, alias="useReferenceContent")
    use_reference_style: bool = Field(default=False, alias="useReferenceStyle")

    def to_generation_request(self) -> GenerationRequest:
        """Convert to the core :class:`GenerationRequest`."""
        return GenerationRequest(
            prompt_text=self.prompt,
            image_count=self.count,
            aspect_ratio=self.aspect_ratio,
            style_id=self.style or NO_STYLE,
            reference_image=self.reference_image or None,
            use_reference_content=self.use_reference_content,
            use_reference_style=self.use_reference_style,
        )


class GenerateResponse(BaseModel):
    """Response body of ``POST /api/generate``."""

    images: list[str]


class PromptRecordOut(BaseModel):
    """A single prompt history row."""

    id: int | str | None = None
    prompt_text: str
    style: str | None = None
    aspect_ratio: str
    reference_image_used: bool = False
    created_at: str | None = None


class PromptHistoryResponse(BaseModel):
    """Response body of ``GET /api/prompts``."""

    model_config = ConfigDict(populate_by_name=True)

    prompts: list[PromptRecordOut]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")

    @classmethod
    def from_page(cls, page: HistoryPage) -> PromptHistoryResponse:
        return cls(
            prompts=[PromptRecordOut(**record.to_dict()) for record in page.records],
            total=page.total,
            page=page.page,
            limit=page.limit,
            total_pages=page.total_pages,
        )


class ErrorResponse(BaseModel):
    """Body of every failed request."""

    error: str
