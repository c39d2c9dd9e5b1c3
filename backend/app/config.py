"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - Secrets default to "" so a missing one is detectable: callers fail closed
      (ConfigurationError) instead of skipping verification
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - get_settings doubles as a FastAPI dependency so tests inject their own Settings
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database (idempotency markers)
    database_url: str = "postgresql+asyncpg://jobsync:jobsync@db:5432/jobsync"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 5
    database_max_overflow: int = 5
    idempotency_ttl_seconds: int = 86_400

    # Payment processor
    stripe_api_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_timestamp_tolerance_seconds: int = 300

    # Board (field-change) webhooks
    board_webhook_secret: str = ""
    monday_api_key: str = ""
    monday_board_id: str = ""
    monday_api_url: str = "https://api.monday.com/v2"
    monday_api_version: str = "2023-10"

    # Job ledger
    hirehop_api_token: str = ""
    hirehop_domain: str = "hirehop.net"
    hirehop_export_key: str = ""

    # Reference tokens embedded in payment links
    job_token_secret: str = ""

    # Outbound HTTP
    http_timeout_seconds: float = 15.0

    # API
    cors_origins: list[str] = ["*"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
