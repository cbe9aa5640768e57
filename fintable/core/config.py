"""Application configuration."""

import os
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)


def find_env_file() -> Optional[Path]:
    """Find .env file in the package directory or one of its parents."""
    current_dir = os.path.dirname(os.path.abspath(__file__))

    possible_paths = [
        os.path.join(current_dir, ".env"),
        os.path.join(os.path.dirname(current_dir), ".env"),
        os.path.join(os.path.dirname(os.path.dirname(current_dir)), ".env"),
    ]

    for path_str in possible_paths:
        if os.path.exists(path_str):
            path = Path(path_str)
            LOGGER.info(f"Found .env file at: {path}")
            return path

    LOGGER.debug("No .env file found in expected locations")
    return None


ENV_FILE = find_env_file()


def _settings_config() -> SettingsConfigDict:
    return SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="",
    )


class LLMSettings(BaseSettings):
    """Generative-AI provider settings."""

    gemini_api_key: str = Field(default="", validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
    timeout: int = Field(default=120, validation_alias="GEMINI_TIMEOUT")
    # A single attempt: failures surface to the user instead of being retried
    max_retries: int = Field(default=1, ge=1, validation_alias="GEMINI_MAX_RETRIES")
    page_temperature: float = Field(default=0.1, validation_alias="PAGE_EXTRACTION_TEMPERATURE")

    model_config = _settings_config()

    def model_post_init(self, __context) -> None:
        """Log settings after initialization."""
        LOGGER.info(f"Gemini model: {self.gemini_model}")
        LOGGER.info(f"Gemini API Key present: {bool(self.gemini_api_key)}")


class ExtractionSettings(BaseSettings):
    """Page rendering and structuring defaults."""

    render_scale: float = Field(default=1.5, gt=0, validation_alias="RENDER_SCALE")
    jpeg_quality: int = Field(default=90, ge=1, le=100, validation_alias="JPEG_QUALITY")
    default_confidence: float = Field(default=0.98, ge=0.0, le=1.0, validation_alias="DEFAULT_CONFIDENCE")
    not_specified_label: str = Field(default="לא צוין", validation_alias="NOT_SPECIFIED_LABEL")
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")

    model_config = _settings_config()


class ExportSettings(BaseSettings):
    """Export and notification timing."""

    db_export_delay_seconds: float = Field(default=1.5, ge=0, validation_alias="DB_EXPORT_DELAY_SECONDS")
    export_message_ttl_seconds: float = Field(default=5.0, ge=0, validation_alias="EXPORT_MESSAGE_TTL_SECONDS")
    sse_heartbeat_seconds: float = Field(default=15.0, gt=0, validation_alias="SSE_HEARTBEAT_SECONDS")

    model_config = _settings_config()


class SessionSettings(BaseSettings):
    """Session registry limits."""

    # Idle sessions older than this are evicted on the next session creation; 0 disables
    idle_ttl_seconds: float = Field(default=3600.0, ge=0, validation_alias="SESSION_IDLE_TTL_SECONDS")

    model_config = _settings_config()


class Settings(BaseSettings):
    """Unified application settings with nested models."""

    # Application Settings
    app_name: str = Field(default="FinTable Extractor", validation_alias="APP_NAME")
    app_version: str = "0.1.0"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
        validation_alias="CORS_ORIGINS",
    )

    # API Settings
    api_v1_prefix: str = "/api/v1"
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT")

    # Nested Settings
    llm: LLMSettings = Field(default_factory=lambda: LLMSettings())
    extraction: ExtractionSettings = Field(default_factory=lambda: ExtractionSettings())
    export: ExportSettings = Field(default_factory=lambda: ExportSettings())
    session: SessionSettings = Field(default_factory=lambda: SessionSettings())

    model_config = _settings_config()

    @property
    def gemini_api_key(self) -> str:
        return self.llm.gemini_api_key

    @property
    def gemini_model(self) -> str:
        return self.llm.gemini_model


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings: Application settings loaded from environment
    """
    return Settings()


# Global settings instance
settings = get_settings()

LOGGER.info(f"Settings initialized with environment: {settings.environment}")
