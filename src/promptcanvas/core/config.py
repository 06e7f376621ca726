"""Configuration management for PromptCanvas.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PROMPTCANVAS_
prefix, allowing deployments to point the service at different AWS regions,
Bedrock models, and prompt stores without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PROMPTCANVAS_* prefix)
2. .env file in the project root
3. Default values defined in PromptCanvasConfig

Example .env file:
    PROMPTCANVAS_AWS_REGION=us-east-1
    PROMPTCANVAS_STORE_BACKEND=supabase
    PROMPTCANVAS_SUPABASE_URL=https://example.supabase.co
    PROMPTCANVAS_SUPABASE_KEY=<anon key>

Global Configuration Instance
------------------------------
A global ``config`` instance is created automatically at module import time.
Route handlers and the application lifespan read from it; tests build their
own instances pointing at temporary directories.

Usage Example
-------------
    from promptcanvas.core.config import config

    print(config.bedrock_model_id)
    print(config.sqlite_path)

AWS Credentials
---------------
``aws_access_key_id`` and ``aws_secret_access_key`` are optional.  When they
are left unset, boto3 falls back to its standard credential chain (shared
credentials file, instance profile, and so on).
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PromptCanvasConfig(BaseSettings):
    """Main configuration for PromptCanvas.

    Attributes
    ----------
    Model Settings:
        aws_region : str
            AWS region hosting the Bedrock runtime endpoint
        aws_access_key_id : str | None
            Explicit access key; ``None`` defers to the boto3 credential chain
        aws_secret_access_key : str | None
            Explicit secret key; ``None`` defers to the boto3 credential chain
        bedrock_model_id : str
            Bedrock model identifier for the text-to-image model

    Prompt Store Settings:
        store_backend : Literal["supabase", "sqlite"]
            Which prompt store implementation to use
        supabase_url : str
            Supabase project URL (supabase backend only)
        supabase_key : str
            Supabase API key (supabase backend only)
        supabase_table : str
            Table holding prompt records
        data_dir : Path
            Directory for local data (the SQLite database lives here)
        sqlite_filename : str
            SQLite database file name inside ``data_dir``

    Request Limits:
        min_prompt_length : int
            Minimum accepted prompt length in characters
        max_reference_image_bytes : int
            Maximum decoded size of a reference image
        default_history_limit : int
            Page size used by ``GET /api/prompts`` when none is given

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : str
            Root logging level used by ``main()``
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PROMPTCANVAS_",
        case_sensitive=False,
    )

    # Bedrock model settings
    aws_region: str = Field(
        default="us-east-1",
        description="AWS region hosting the Bedrock runtime",
    )
    aws_access_key_id: str | None = Field(
        default=None,
        description="AWS access key (None = use the default credential chain)",
    )
    aws_secret_access_key: str | None = Field(
        default=None,
        description="AWS secret key (None = use the default credential chain)",
    )
    bedrock_model_id: str = Field(
        default="stability.stable-diffusion-xl-v1",
        description="Bedrock model identifier used for image generation",
    )

    # Prompt store settings
    store_backend: Literal["supabase", "sqlite"] = Field(
        default="sqlite",
        description="Prompt store backend (supabase for hosted, sqlite for local)",
    )
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_key: str = Field(default="", description="Supabase API key")
    supabase_table: str = Field(default="prompts", description="Prompt history table")
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for local data files",
    )
    sqlite_filename: str = Field(default="prompts.db")

    # Request limits
    min_prompt_length: int = Field(default=10, ge=1)
    max_reference_image_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Largest accepted reference image after base64 decoding",
        ge=1,
    )
    default_history_limit: int = Field(default=50, ge=1, le=500)

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=8000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create the data directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def sqlite_path(self) -> Path:
        """Full path of the SQLite prompt database."""
        return self.data_dir / self.sqlite_filename


# Global configuration instance, loaded from PROMPTCANVAS_* variables and .env.
config = PromptCanvasConfig()
