"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./storeauth.db"

    # Security - one signing key per token purpose
    jwt_secret_session: str = "change-this-session-secret-minimum-32-characters"
    jwt_secret_verify: str = "change-this-verify-secret-minimum-32-characters"
    jwt_secret_reset: str = "change-this-reset-secret-minimum-32-characters"
    algorithm: str = "HS256"
    verification_token_ttl_minutes: int = 60
    reset_token_ttl_minutes: int = 15
    session_token_ttl_days: int = 7

    # Links embedded in outbound mail
    frontend_url: str = "http://localhost:3000"
    brand_name: str = "TCG Store"

    # Email (empty smtp_host logs messages instead of sending them)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from_email: str = "noreply@example.com"
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 10.0

    # CAPTCHA (Cloudflare Turnstile)
    turnstile_secret_key: str = ""
    turnstile_verify_url: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify"

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # API Settings
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Storefront Identity Service"
    version: str = "1.0.0"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
