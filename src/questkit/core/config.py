"""Environment-driven settings and logging setup for questkit."""

import logging
from dataclasses import dataclass
from datetime import timedelta

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ValidationSchedule:
    """Runner tunables: re-validation backoff, per-quest timeout and parallelism.

    Failures are revisited less eagerly than successes, so ``error_interval``
    is expected to be longer than ``success_interval``.
    """

    success_interval: timedelta = timedelta(minutes=10)
    error_interval: timedelta = timedelta(minutes=15)
    quest_timeout: float | None = 120.0
    concurrency: int = 1


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database Configuration
    database_url: str = Field(alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # Kraxel blockchain data API
    kraxel_api_url: str = Field(default="", alias="KRAXEL_API_URL")
    kraxel_api_key: str = Field(default="", alias="KRAXEL_API_KEY")
    kraxel_max_retries: int = Field(default=3, ge=1, alias="KRAXEL_MAX_RETRIES")
    kraxel_timeout_seconds: float = Field(default=10.0, gt=0, alias="KRAXEL_TIMEOUT_SECONDS")
    kraxel_backoff_base_seconds: float = Field(
        default=0.1, ge=0, alias="KRAXEL_BACKOFF_BASE_SECONDS"
    )

    # Quest validation scheduling
    validation_success_interval_seconds: int = Field(
        default=600, ge=0, alias="VALIDATION_SUCCESS_INTERVAL_SECONDS"
    )
    validation_error_interval_seconds: int = Field(
        default=900, ge=0, alias="VALIDATION_ERROR_INTERVAL_SECONDS"
    )
    quest_timeout_seconds: float = Field(default=120.0, ge=0, alias="QUEST_TIMEOUT_SECONDS")
    validation_concurrency: int = Field(default=1, ge=1, alias="VALIDATION_CONCURRENCY")

    # In-process sweep worker (external cron is the default trigger)
    validation_worker_enabled: bool = Field(default=False, alias="VALIDATION_WORKER_ENABLED")
    sweep_interval_seconds: int = Field(default=300, ge=1, alias="SWEEP_INTERVAL_SECONDS")

    def validation_schedule(self) -> ValidationSchedule:
        """Build the runner schedule from settings.

        A quest timeout of 0 disables the per-quest bound.
        """
        return ValidationSchedule(
            success_interval=timedelta(seconds=self.validation_success_interval_seconds),
            error_interval=timedelta(seconds=self.validation_error_interval_seconds),
            quest_timeout=self.quest_timeout_seconds or None,
            concurrency=self.validation_concurrency,
        )

    @model_validator(mode="after")
    def require_kraxel_endpoint(self) -> "Settings":
        """Refuse to start without a Kraxel endpoint outside of tests."""
        if self.app_env in ("test", "testing") or self.kraxel_api_url:
            return self

        raise ValueError(
            "KRAXEL_API_URL is not set. Quest criteria cannot be evaluated without "
            "the Kraxel blockchain data API; set it in the environment or .env file."
        )


def configure_logging(settings: Settings) -> None:
    """Configure structlog for the current environment.

    Production renders one JSON object per line; other environments use the
    console renderer. Events below LOG_LEVEL are dropped.
    """
    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.app_env == "production":
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
