# learnsched/core/config.py
import logging
import os
from pathlib import Path
from typing import Set

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).resolve().parents[2] / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


PROD_ENVIRONMENTS: Set[str] = {"prod", "production", "live"}


class Settings(BaseSettings):
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "SITE_MODE"),
        description="Deployment environment name",
    )

    # Persistence
    database_url: str = Field(
        default="sqlite+pysqlite:///./learnsched.db",
        description="SQLAlchemy URL for the booking store",
    )
    database_echo: bool = False

    # Redis / Celery
    redis_url: str = "redis://localhost:6379"
    celery_broker_url: str | None = Field(
        default=None,
        description="Overrides redis_url as the Celery broker when set",
    )

    # Escalation workflow
    escalation_threshold_hours: int = Field(
        default=24,
        ge=1,
        validation_alias=AliasChoices(
            "WORKFLOW_ESCALATION_HOURS", "ESCALATION_THRESHOLD_HOURS"
        ),
        description="Hours a REQUESTED booking may wait without an instructor",
    )
    escalation_interval_minutes: int = Field(
        default=60, ge=1, description="Beat interval for the escalation sweep"
    )
    escalation_max_attempts: int = Field(
        default=3, ge=1, description="Attempts per escalation cycle before giving up"
    )
    escalation_retry_base_delay_seconds: float = Field(
        default=1.0, ge=0, description="Linear backoff unit between sweep attempts"
    )

    # Bookings
    booking_name_max_length: int = 200
    booking_list_cache_ttl_seconds: int = Field(
        default=30, ge=0, description="TTL for cached booking list pages"
    )
    instructor_lock_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="How long assign/accept wait for the per-instructor write lock",
    )

    # Audit
    audit_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return "production" if normalized in PROD_ENVIRONMENTS else normalized or "development"
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def broker_url(self) -> str:
        return self.celery_broker_url or self.redis_url


settings = Settings()
