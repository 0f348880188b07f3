"""Authsome configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "secret_key": "insecure-dev-key-change-me",
    "encryption_key": "insecure-encryption-key-change-me",
}


class AuthsomeSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AUTHSOME_")

    environment: str = "development"
    secret_key: str = "insecure-dev-key-change-me"
    encryption_key: str = "insecure-encryption-key-change-me"

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/authsome.db"

    # API
    api_title: str = "Authsome"
    api_version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = "/api/v1/authsome-service"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Sessions (refresh tokens)
    max_simultaneous_sessions: int = 5
    session_ttl_days: int = 30

    # Access tokens
    access_token_ttl: int = 3600  # seconds
    access_token_issuer: str = "AUTHSOME_TENANT"
    access_token_algorithm: str = "HS256"

    # Signup
    signup_identity_types: list[str] = ["EMAIL"]
    signup_otp_length: int = 4
    signup_otp_ttl: int = 300  # seconds

    # Notifications
    email_provider: str = ""  # "sendgrid", "resend" or empty for log-only
    email_api_key: str = ""
    email_from: str = "no-reply@authsome.dev"
    email_from_name: str = "Authsome"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_days * 24 * 60 * 60

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"AUTHSOME_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys; set AUTHSOME_SECRET_KEY and "
                "AUTHSOME_ENCRYPTION_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> AuthsomeSettings:
    settings = AuthsomeSettings()
    settings.validate_for_production()
    return settings
