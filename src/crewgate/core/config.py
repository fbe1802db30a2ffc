from functools import lru_cache
from urllib.parse import urlparse

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Crewgate"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True

    # Security
    log_user_emails: bool = False  # Keep off in production (GDPR)
    allowed_app_url_domains: list[str] = ["localhost", "127.0.0.1"]

    # Database
    database_url: str
    # Unrestricted role used only behind an authorization grant; defaults to database_url
    database_elevated_url: str | None = None
    database_migrations_url: str | None = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full
    database_statement_cache_size: int = 100

    # Transient persistence failures are retried once before surfacing
    persistence_retry_attempts: int = 2
    persistence_retry_backoff_seconds: float = 0.05

    # Auth
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if v == "change-this-to-a-secure-random-string":
            raise ValueError(
                "JWT_SECRET_KEY must be changed from default value. "
                "Generate a secure secret with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Reject wildcards since credentials are allowed."""
        if "*" in v:
            raise ValueError(
                "CORS wildcard '*' is not allowed when allow_credentials=True. "
                "Specify explicit origins instead."
            )
        return v

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    # Email (Resend)
    resend_api_key: str | None = None  # If not set, emails are logged but not sent
    email_from: str = "noreply@example.com"
    email_send_timeout_seconds: int = 10
    app_url: str = "http://localhost:3000"  # Frontend URL for acceptance links

    @field_validator("app_url")
    @classmethod
    def validate_app_url(cls, v: str, info: ValidationInfo) -> str:
        """APP_URL ends up in invitation emails, so it must be an allowed domain."""
        allowed = info.data.get("allowed_app_url_domains", ["localhost", "127.0.0.1"])
        hostname = urlparse(v).hostname or ""
        if not any(hostname == domain or hostname.endswith(f".{domain}") for domain in allowed):
            raise ValueError(
                f"APP_URL domain '{hostname}' not in allowed list. "
                f"Add it to ALLOWED_APP_URL_DOMAINS or use: {allowed}"
            )
        return v

    # Invitations
    invitation_expire_hours: int = 48

    # Quotas (fixed window, per subject)
    invite_rate_limit: int = 10
    invite_rate_window_seconds: int = 3600
    resend_rate_limit: int = 3
    resend_rate_window_seconds: int = 3600
    member_change_rate_limit: int = 30
    member_change_rate_window_seconds: int = 3600

    # Per-IP throttle on public (token-bearing) endpoints, slowapi syntax
    public_invitation_rate_limit: str = "20/minute"

    # Redis (optional - quotas fall back to in-process counters)
    redis_url: str | None = None  # e.g., "redis://localhost:6379/0"
    redis_pool_size: int = 10
    rate_limit_key_prefix: str = "crewgate:ratelimit"


@lru_cache
def get_settings() -> Settings:
    return Settings()
