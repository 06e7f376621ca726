"""PromptCanvas - text-to-image generation service with prompt history."""

__version__ = "0.1.0"
