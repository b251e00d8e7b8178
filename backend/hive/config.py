"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in callers)
    - get_settings() is cached (lru_cache): single instance per process

Design Decisions:
    - Defaults provided for all non-secret settings so docker-compose works out of the box
    - Bearer tokens are HS256 JWTs signed with jwt_secret (same shape the hosted auth issues)
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "postgresql+asyncpg://hive:hive@db:5432/hive"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms hand out postgres(ql):// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str):
            for prefix in ("postgres://", "postgresql://"):
                if v.startswith(prefix):
                    return v.replace(prefix, "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Auth
    jwt_secret: str = "hive-dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"
    jwt_expiry_minutes: int = 60

    # LLM providers
    anthropic_api_key: str | None = None
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 120
    provider_timeout_seconds: int = 120

    # Message signatures
    message_signing_secret: str = "hive-dev-signing-secret"

    # Webhooks
    webhook_timeout_seconds: float = 30.0
    webhook_max_payload_bytes: int = 1024 * 1024
    webhook_dispatch_batch_size: int = 50

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
