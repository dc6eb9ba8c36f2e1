import logging
import secrets
import sys
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App config
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:5174"]
    DEBUG: bool = False

    # WebSocket config
    WS_HEARTBEAT_INTERVAL: int = 30
    WS_CONNECTION_TIMEOUT: int = 120

    # Session lifecycle
    DISCONNECT_GRACE_SECONDS: float = 5.0
    SESSION_MAX_AGE_SECONDS: int = 24 * 60 * 60
    SESSION_SWEEP_INTERVAL: int = 60 * 60

    # Resume tokens, signed per process unless a shared secret is configured
    RESUME_TOKEN_SECRET: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    RESUME_TOKEN_TTL_SECONDS: int = 24 * 60 * 60

    # External board generator
    BOARD_GENERATOR_URL: str | None = None
    BOARD_GENERATION_TIMEOUT: float = 10.0
    DEFAULT_DIFFICULTY: str = "moderate"

    @field_validator(
        "DISCONNECT_GRACE_SECONDS",
        "SESSION_MAX_AGE_SECONDS",
        "SESSION_SWEEP_INTERVAL",
        "BOARD_GENERATION_TIMEOUT",
        "RESUME_TOKEN_TTL_SECONDS",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Durations must be positive")
        return v

    @field_validator("BOARD_GENERATOR_URL")
    @classmethod
    def validate_generator_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("BOARD_GENERATOR_URL must be an HTTP(S) URL")
        return v


def configure_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    configure_logging(settings.DEBUG)
    logger.info("Settings loaded successfully")
    logger.debug("Board generator URL: %s", settings.BOARD_GENERATOR_URL)
    logger.debug(
        "Session lifecycle: grace=%.1fs, max_age=%ds, sweep_interval=%ds",
        settings.DISCONNECT_GRACE_SECONDS,
        settings.SESSION_MAX_AGE_SECONDS,
        settings.SESSION_SWEEP_INTERVAL,
    )
    return settings
