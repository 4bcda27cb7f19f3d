"""Configuration management for the Dreamjob Portrait Generator.

This module provides centralized configuration management using Pydantic
Settings.  Configuration is loaded from environment variables with the
``DREAMJOB_`` prefix, allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:

1. Environment variables (``DREAMJOB_*`` prefix)
2. ``.env`` file in the working directory
3. Default values defined in :class:`DreamjobConfig`

The provider secret is the one exception to the prefix rule: it is read from
``STABILITY_API_KEY`` (the name used by the Stability AI tooling) or from
``DREAMJOB_STABILITY_API_KEY``.

Example ``.env`` file::

    STABILITY_API_KEY=sk-...
    DREAMJOB_PROVIDER_TIMEOUT=90
    DREAMJOB_JOB_TTL_SECONDS=1800
    DREAMJOB_SERVER_PORT=3000

Global Configuration Instance
------------------------------
A global ``config`` instance is created at import time and handed to
:func:`dreamjob.api.main.create_app`.  Tests build their own instances and
pass them in explicitly.

Usage Example
-------------
::

    from dreamjob.core.config import config

    if not config.is_api_key_configured:
        ...
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Value shipped in the sample ``.env`` file.  Treated as "not configured".
API_KEY_PLACEHOLDER = "your_stability_api_key_here"

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


class DreamjobConfig(BaseSettings):
    """Main configuration for the Dreamjob Portrait Generator.

    Attributes
    ----------
    Provider Settings:
        stability_api_key : str
            Secret key for the Stability AI REST API.
        stability_api_host : str
            Base URL of the Stability AI REST API.
        stability_engine_id : str
            Engine used for image-to-image generation.
        provider_timeout : float
            Seconds to wait for the provider before giving up.

    Generation Settings:
        target_width : int
            Width the uploaded photo is normalised to before submission.
        target_height : int
            Height the uploaded photo is normalised to before submission.

    Job Settings:
        job_ttl_seconds : int
            Lifetime of a job record in the handoff store.

    Server Settings:
        server_host : str
            Bind address for uvicorn.
        server_port : int
            Port for uvicorn (1024-65535).
        log_level : str
            Root log level configured by the CLI entry point.

    Paths:
        static_dir : Path
            Directory holding CSS and JavaScript assets.
        templates_dir : Path
            Directory holding the HTML pages.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DREAMJOB_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Provider settings
    stability_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "stability_api_key",
            "STABILITY_API_KEY",
            "DREAMJOB_STABILITY_API_KEY",
        ),
        description="Stability AI API key",
    )
    stability_api_host: str = Field(
        default="https://api.stability.ai",
        description="Base URL of the Stability AI REST API",
    )
    stability_engine_id: str = Field(
        default="stable-diffusion-xl-1024-v1-0",
        description="Engine used for image-to-image generation",
    )
    provider_timeout: float = Field(
        default=120.0,
        description="Seconds to wait for the provider response",
        gt=0,
    )

    # Generation settings
    target_width: int = Field(default=1024, ge=64, le=2048)
    target_height: int = Field(default=1024, ge=64, le=2048)

    # Job handoff store
    job_ttl_seconds: int = Field(
        default=3600,
        description="Seconds a job record survives in the handoff store",
        ge=1,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=3000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # Paths
    static_dir: Path = Field(
        default=_PACKAGE_DIR / "static",
        description="Directory with CSS and JavaScript assets",
    )
    templates_dir: Path = Field(
        default=_PACKAGE_DIR / "templates",
        description="Directory with the HTML pages",
    )

    @property
    def is_api_key_configured(self) -> bool:
        """Whether a real (non-placeholder) provider key is present."""
        key = self.stability_api_key.strip()
        return bool(key) and key != API_KEY_PLACEHOLDER


# Global configuration instance
# Loaded once at import time from the environment and the .env file.
config = DreamjobConfig()
