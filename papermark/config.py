"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in production)
    - get_settings() is cached (lru_cache), one instance per process
    - Access windows (OTP, verification token, download) live here, not in handlers
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://papermark:papermark@db:5432/papermark"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Security
    secret_key: str = "change-me-papermark-secret"
    # Fernet key (urlsafe base64, 32 bytes) used to encrypt link passwords at rest
    encryption_key: str = "bW9jay1wYXBlcm1hcmstZW5jcnlwdGlvbi1rZXktMzI="
    access_token_ttl_minutes: int = 60 * 24 * 7

    # Visitor access windows
    otp_ttl_minutes: int = 10
    verification_token_ttl_hours: int = 23
    dataroom_session_ttl_minutes: int = 60
    document_download_window_minutes: int = 30
    dataroom_download_window_hours: int = 23

    # Storage: file keys are resolved against this base URL
    storage_base_url: str = "https://assets.papermark.local"

    # Outbound email (Resend HTTP API); empty key disables delivery
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    email_from: str = "Papermark <system@papermark.local>"

    # Outbound HTTP (email + webhooks)
    http_max_retries: int = 3
    http_base_delay_ms: int = 500
    http_max_delay_ms: int = 10_000
    http_timeout_seconds: int = 10

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
