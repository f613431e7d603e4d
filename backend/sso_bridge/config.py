"""Configuration settings for the SSO bridge."""

from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "SSO Bridge"
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    # Secrets
    token_secret: str = ""  # Signs issued session tokens
    sso_provider_secret: str = ""  # HMAC key shared with the identity provider

    # Identity provider
    discourse_root_url: str = "http://localhost:3000"

    # Nonces
    nonce_expires_in_seconds: int = 600
    nonce_key_prefix: str = ""  # Empty keeps nonces as bare Redis keys

    # Session tokens
    token_expires_in_seconds: int | None = None  # No exp claim when unset

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Use X-Forwarded-Proto/X-Forwarded-Host for the callback URL (only behind a trusted proxy)
    trust_proxy_headers: bool = False

    # Rejections return 200 with an error body unless strict status codes are enabled
    strict_error_status: bool = False

    # Rate limiting (slowapi limit string)
    rate_limit: str = "60/minute"
    rate_limit_enabled: bool = True

    # CORS settings
    cors_origins: str = "[]"

    @field_validator("discourse_root_url")
    @classmethod
    def normalize_root_url(cls, v: str) -> str:
        """Strip whitespace and trailing slashes; require an http(s) URL with a host."""
        v = (v or "").strip().rstrip("/")
        parsed = urlparse(v)

        if parsed.scheme not in ("http", "https"):
            raise ValueError("DISCOURSE_ROOT_URL must start with http:// or https://")

        if not parsed.hostname:
            raise ValueError("DISCOURSE_ROOT_URL must include a hostname")

        return v

    @field_validator("nonce_expires_in_seconds")
    @classmethod
    def validate_nonce_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("NONCE_EXPIRES_IN_SECONDS must be a positive number of seconds")
        return v

    @field_validator("token_expires_in_seconds", mode="before")
    @classmethod
    def normalize_token_ttl(cls, v):
        # An empty env var means "no expiry"
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("redis_password", mode="before")
    @classmethod
    def normalize_redis_password(cls, v):
        if isinstance(v, str) and not v:
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()
