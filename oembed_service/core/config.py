from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # Operator's own site; requests to this host bypass the SSRF guard
    SITE_URL: str = "http://localhost:2368"

    # === Embed Fetch Configuration ===
    EMBED_FETCH_TIMEOUT_SECONDS: float = Field(
        default=2.0,
        description="Timeout for every outbound embed fetch (seconds). Never retried.",
    )
    EMBED_MAX_REDIRECTS: int = Field(
        default=10,
        description="Maximum redirect hops followed per fetch; each hop is re-vetted.",
    )
    EMBED_MAX_BODY_BYTES: int = 5 * 1024 * 1024  # 5 MB
    EMBED_USER_AGENT: str = "oembed-service/1.0"

    @field_validator("EMBED_FETCH_TIMEOUT_SECONDS")
    @classmethod
    def validate_fetch_timeout(cls, v: float) -> float:
        """Validate fetch timeout (seconds)."""
        if v < 0.1:
            raise ValueError("EMBED_FETCH_TIMEOUT_SECONDS must be >= 0.1 seconds")
        if v > 30.0:
            raise ValueError("EMBED_FETCH_TIMEOUT_SECONDS must be <= 30 seconds")
        return v

    @field_validator("EMBED_MAX_REDIRECTS")
    @classmethod
    def validate_max_redirects(cls, v: int) -> int:
        """Validate redirect hop limit."""
        if v < 0:
            raise ValueError("EMBED_MAX_REDIRECTS must be >= 0")
        if v > 20:
            raise ValueError("EMBED_MAX_REDIRECTS must be <= 20")
        return v

    @field_validator("EMBED_MAX_BODY_BYTES")
    @classmethod
    def validate_max_body_bytes(cls, v: int) -> int:
        """Validate response body cap."""
        if v < 1024:
            raise ValueError("EMBED_MAX_BODY_BYTES must be >= 1024 bytes")
        return v


settings = Settings()
