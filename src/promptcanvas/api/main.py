"""PromptCanvas — FastAPI Application.

This module defines the FastAPI ``app`` instance, all REST API routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :mod:`promptcanvas.core.config`
  (``PROMPTCANVAS_*`` environment variables).
- **Image generation** is delegated to Stability SDXL on AWS Bedrock via
  :class:`~promptcanvas.core.model_client.BedrockImageModel`.  Up to three
  images are requested concurrently per call.
- **Prompt history** is written after each successful generation by a
  fire-and-forget :class:`~promptcanvas.core.history.HistoryRecorder` and
  read back page by page from the configured prompt store.
- **Errors** are reported as ``{"error": "<message>"}`` with a non-2xx
  status code.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
POST      ``/api/generate``             Generate 1-3 images
GET       ``/api/prompts``              Paginated prompt history
GET       ``/api/config``               Styles, aspect ratios, limits
GET       ``/api/health``               Liveness check
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    promptcanvas

Direct invocation::

    python -m promptcanvas.api.main
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from promptcanvas import __version__
from promptcanvas.api.models import (
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    PromptHistoryResponse,
)
from promptcanvas.core.config import PromptCanvasConfig, config
from promptcanvas.core.errors import PromptCanvasError, UpstreamGenerationError, ValidationError
from promptcanvas.core.fanout import generate_images
from promptcanvas.core.history import HistoryRecorder, list_history
from promptcanvas.core.model_client import BedrockImageModel, ImageModel
from promptcanvas.core.request_builder import (
    DIMENSIONS,
    MAX_IMAGES,
    build_payloads,
    validate_reference_image,
)
from promptcanvas.core.stores import PromptStore, create_store
from promptcanvas.core.styles import list_styles, styles_by_category

logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}

router = APIRouter()


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.post("/api/generate", response_model=GenerateResponse, responses=_ERROR_RESPONSES)
async def generate(req: GenerateRequest, request: Request) -> GenerateResponse:
    """Generate a batch of images from a prompt.

    This endpoint:

    1. Validates the prompt length and, when it will be used, the reference
       image.
    2. Builds one Stability payload per requested image (1-3).
    3. Invokes the model concurrently for every payload.
    4. Schedules a best-effort history write and returns without waiting
       for it.

    Args:
        req: Validated :class:`GenerateRequest` payload.
        request: The incoming request (for ``app.state``).

    Returns:
        :class:`GenerateResponse` with one base64 image per payload, in
        payload order.  Slots whose model response had no artifact are
        empty strings.

    Raises:
        ValidationError: 400 for a missing/short prompt or bad reference
            image.
        UpstreamGenerationError: 502 if any model invocation fails.
    """
    settings: PromptCanvasConfig = request.app.state.config
    generation = req.to_generation_request()

    # --- Validate input ----------------------------------------------------
    # Length ignores surrounding whitespace; the prompt is forwarded as typed.
    stripped = generation.prompt_text.strip()
    if not stripped:
        raise ValidationError("Prompt is required")
    if len(stripped) < settings.min_prompt_length:
        raise ValidationError(
            f"Prompt must be at least {settings.min_prompt_length} characters."
        )
    if generation.uses_reference:
        validate_reference_image(generation.reference_image, settings.max_reference_image_bytes)

    # --- Generate ----------------------------------------------------------
    payloads = build_payloads(generation)
    model: ImageModel = request.app.state.image_model
    try:
        images = await generate_images(model, payloads)
    except UpstreamGenerationError:
        logger.exception("Error generating images")
        raise

    # --- Record history (fire-and-forget) ----------------------------------
    recorder: HistoryRecorder = request.app.state.history_recorder
    recorder.record(
        generation.prompt_text,
        generation.style_id,
        generation.aspect_ratio,
        generation.uses_reference,
    )

    return GenerateResponse(images=images)


@router.get("/api/prompts", response_model=PromptHistoryResponse, responses=_ERROR_RESPONSES)
async def get_prompts(
    request: Request,
    page: int = 1,
    limit: int | None = None,
) -> PromptHistoryResponse:
    """Return a paginated listing of recorded prompts, newest first.

    Args:
        request: The incoming request (for ``app.state``).
        page: Page number (1-indexed).
        limit: Records per page; defaults to ``config.default_history_limit``
            and is clamped to ``MAX_PAGE_SIZE``.

    Returns:
        :class:`PromptHistoryResponse` with ``prompts``, ``total``, ``page``,
        ``limit``, and ``totalPages``.  Pages past the end have no prompts.

    Raises:
        ValidationError: 400 for ``page < 1`` or ``limit < 1``.
        PersistenceError: 500 if the store read fails.
    """
    settings: PromptCanvasConfig = request.app.state.config
    store: PromptStore = request.app.state.prompt_store
    if limit is None:
        limit = settings.default_history_limit

    try:
        history = await asyncio.to_thread(list_history, store, page, limit)
    except ValidationError:
        raise
    except PromptCanvasError:
        logger.exception("Error fetching prompts")
        raise
    return PromptHistoryResponse.from_page(history)


@router.get("/api/config")
async def get_config(request: Request) -> dict:
    """Return the options the frontend needs to build its form.

    Returns:
        Dictionary with keys ``version``, ``styles``, ``stylesByCategory``,
        ``aspectRatios``, ``maxImages``, and ``minPromptLength``.
    """
    settings: PromptCanvasConfig = request.app.state.config
    return {
        "version": __version__,
        "styles": [style.to_dict() for style in list_styles()],
        "stylesByCategory": {
            category: [style.to_dict() for style in styles]
            for category, styles in styles_by_category().items()
        },
        "aspectRatios": [
            {"id": ratio, "width": width, "height": height}
            for ratio, (width, height) in DIMENSIONS.items()
        ],
        "maxImages": MAX_IMAGES,
        "minPromptLength": settings.min_prompt_length,
    }


@router.get("/api/health")
async def health() -> dict:
    """Liveness check."""
    return {"status": "ok", "version": __version__}


# ---------------------------------------------------------------------------
# Error handlers.
# ---------------------------------------------------------------------------


async def _handle_app_error(request: Request, exc: PromptCanvasError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    settings: PromptCanvasConfig | None = None,
    *,
    image_model: ImageModel | None = None,
    prompt_store: PromptStore | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration; defaults to the global ``config``.
        image_model: Model client to use instead of a Bedrock client.
        prompt_store: Prompt store to use instead of the configured backend.

    Returns:
        A ready-to-serve :class:`FastAPI` instance.  Collaborators that were
        not injected are created in the lifespan startup phase.
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create collaborators on startup and flush history on shutdown."""
        # --- Startup -------------------------------------------------------
        app.state.config = settings
        app.state.image_model = image_model or BedrockImageModel.from_config(settings)
        app.state.prompt_store = prompt_store or create_store(settings)
        app.state.history_recorder = HistoryRecorder(app.state.prompt_store)
        logger.info("PromptCanvas %s started (model=%s)", __version__, settings.bedrock_model_id)

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        recorder: HistoryRecorder = app.state.history_recorder
        if recorder.pending:
            logger.info("Waiting for %d pending history write(s)", recorder.pending)
        await recorder.drain()
        logger.info("PromptCanvas shut down.")

    app = FastAPI(
        title="PromptCanvas",
        description="Text-to-image generation with styles, reference images, and prompt history.",
        version=__version__,
        lifespan=lifespan,
    )

    # Allow cross-origin requests so the frontend can be served separately.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PromptCanvasError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.include_router(router)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port, and log level from :data:`~promptcanvas.core.config.config`
    (``PROMPTCANVAS_SERVER_HOST``, ``PROMPTCANVAS_SERVER_PORT``,
    ``PROMPTCANVAS_LOG_LEVEL``).  Defaults to ``0.0.0.0:8000``.

    This function is registered as the ``promptcanvas`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "promptcanvas.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
