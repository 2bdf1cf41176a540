"""
Configuration settings for http_resilience.

All settings are loaded from environment variables prefixed with
``HTTP_RESILIENCE_`` (or a .env file) and can be bound to a ``RetryOptions``
instance with ``RetryOptions.from_settings(settings)``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Retry settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HTTP_RESILIENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Logging ===
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"  # "production" switches to JSON logs

    # === Retry ===
    MAX_RETRIES: int = Field(default=5, ge=0)
    ENSURE_SUCCESS_STATUS_CODE: bool = True
    RETRYABLE_STATUS_CODES: list[int] = [502, 503, 504]

    # === Backoff (seconds) ===
    MIN_BACKOFF_SECONDS: float = Field(default=1.0, ge=0)
    MAX_BACKOFF_SECONDS: float = Field(default=10.0, ge=0)
    BACKOFF_COEFFICIENT_SECONDS: float = Field(default=1.0, ge=0)


# Global settings instance
settings = Settings()
