"""
Conversion Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Fixed upload constraints (not configurable)
ALLOWED_EXTENSIONS = (".doc", ".docx")
MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB


def _default_temp_dir() -> Path:
    return Path.cwd() / "uploads" / "temp"


class ConverterSettings(BaseSettings):
    """
    Conversion service configuration with validation.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === Scratch storage ===
    temp_upload_dir: Path = Field(
        default_factory=_default_temp_dir,
        description="Directory holding uploaded and rendered artifacts"
    )
    upload_chunk_size: int = Field(
        default=64 * 1024,
        ge=1024,
        le=MAX_UPLOAD_BYTES,
        description="Bytes read from the upload stream per chunk"
    )

    # === Playwright ===
    playwright_timeout: int = Field(
        default=30000,
        ge=1000,
        le=300000,
        description="Content load and PDF generation timeout in milliseconds"
    )
    playwright_headless: bool = Field(
        default=True,
        description="Launch Chromium in headless mode"
    )
    validate_renderer_on_startup: bool = Field(
        default=True,
        description="Render a test PDF at startup to report readiness on /health"
    )

    # === LibreOffice (legacy .doc support) ===
    soffice_binary: str = Field(
        default="soffice",
        description="LibreOffice executable used to convert .doc to .docx"
    )
    soffice_timeout_seconds: int = Field(
        default=60,
        ge=5,
        le=600,
        description="Maximum time for the .doc to .docx conversion (5-600)"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @property
    def render_timeout_seconds(self) -> float:
        """Upper bound for a whole render call (load wait plus PDF generation)."""
        return self.playwright_timeout * 2 / 1000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache()
def get_settings() -> ConverterSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached. Tests call
    ``get_settings.cache_clear()`` after changing the environment.
    """
    return ConverterSettings()


def validate_config_on_startup() -> ConverterSettings:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    """
    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}") from e

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  temp_upload_dir={settings.temp_upload_dir}")
    logger.info(f"  playwright_timeout={settings.playwright_timeout}ms")
    logger.info(f"  playwright_headless={settings.playwright_headless}")
    logger.info(f"  soffice_binary={settings.soffice_binary}")

    return settings
