"""Core functionality for PromptCanvas.

- **config**: Pydantic Settings configuration (``PROMPTCANVAS_`` prefix)
- **styles**: Static style catalog
- **prompt**: Prompt composition
- **request_builder**: Generation request to model payload mapping
- **model_client**: Bedrock runtime client
- **fanout**: Concurrent model invocation
- **stores**: Supabase and SQLite prompt stores
- **history**: Best-effort history recording and paginated reading
"""

from promptcanvas.core.config import PromptCanvasConfig, config
from promptcanvas.core.errors import (
    MalformedReferenceImage,
    PersistenceError,
    PromptCanvasError,
    UpstreamGenerationError,
    ValidationError,
)
from promptcanvas.core.fanout import extract_first_artifact, generate_images
from promptcanvas.core.history import HistoryPage, HistoryRecorder, list_history
from promptcanvas.core.model_client import BedrockImageModel, ImageModel
from promptcanvas.core.prompt import compose
from promptcanvas.core.request_builder import (
    GenerationRequest,
    ModelInvocationPayload,
    build_payloads,
    resolve_dimensions,
)
from promptcanvas.core.stores import (
    PromptRecord,
    PromptStore,
    SQLitePromptStore,
    SupabasePromptStore,
    create_store,
)
from promptcanvas.core.styles import StyleOption, lookup, styles_by_category

__all__ = [
    "PromptCanvasConfig",
    "config",
    "PromptCanvasError",
    "ValidationError",
    "MalformedReferenceImage",
    "UpstreamGenerationError",
    "PersistenceError",
    "StyleOption",
    "lookup",
    "styles_by_category",
    "compose",
    "GenerationRequest",
    "ModelInvocationPayload",
    "build_payloads",
    "resolve_dimensions",
    "ImageModel",
    "BedrockImageModel",
    "extract_first_artifact",
    "generate_images",
    "PromptRecord",
    "PromptStore",
    "SQLitePromptStore",
    "SupabasePromptStore",
    "create_store",
    "HistoryPage",
    "HistoryRecorder",
    "list_history",
]
