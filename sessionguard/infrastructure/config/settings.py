"""Application settings using pydantic-settings."""

import logging
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from sessionguard.domain.exceptions import InvalidDurationException
from sessionguard.domain.value_objects.duration import Duration

logger = logging.getLogger(__name__)

# Defaults used when a duration setting is present but malformed
_DURATION_DEFAULTS = {
    "access_token_expires_in": Duration.parse("15m"),
    "refresh_token_expires_in": Duration.parse("7d"),
    "login_rate_limit_window": Duration.parse("15m"),
    "refresh_rate_limit_window": Duration.parse("15m"),
    "rate_limit_cleanup_interval": Duration.parse("60s"),
}

# Env values are plain strings such as "15m"; keep pydantic-settings from JSON-decoding them
DurationSetting = Annotated[Duration, NoDecode]


class Settings(BaseSettings):
    """Application configuration - single source of truth.

    All settings loaded from environment variables or .env files.
    Duration settings accept strings such as "15m" or "7d" and are parsed
    once, here; a malformed value is reported and replaced by its default.

    Usage:
        settings = get_settings()
        print(settings.access_token_expires_in.seconds)
        print(settings.redis_url)
    """

    # Shared store
    redis_url: str = Field(
        default="",
        description="Redis connection URL. Empty selects the in-process store "
        "(single instance only: development and tests).",
    )
    redis_socket_timeout: float = Field(default=2.0, gt=0)

    # Token signing
    jwt_secret: str = Field(default="", min_length=32, validate_default=True)
    jwt_refresh_secret: str = Field(default="", min_length=32, validate_default=True)
    jwt_algorithm: str = Field(default="HS512")
    jwt_issuer: str = Field(default="sessionguard")
    jwt_audience: str = Field(default="sessionguard-admin")

    # Token lifetimes
    access_token_expires_in: DurationSetting = Field(default=_DURATION_DEFAULTS["access_token_expires_in"])
    refresh_token_expires_in: DurationSetting = Field(default=_DURATION_DEFAULTS["refresh_token_expires_in"])
    token_ttl_buffer_seconds: int = Field(
        default=300,
        ge=0,
        description="Added to every revocation and family TTL so store entries "
        "always outlive the tokens they describe.",
    )
    rotation_compare_and_swap: bool = Field(
        default=False,
        description="Make the family update during rotation a conditional write. "
        "Closes the concurrent-refresh race at the cost of one extra round trip.",
    )

    # Admin identity
    admin_email: str = Field(default="")
    admin_password_hash: str = Field(default="")

    # Rate limiting
    login_rate_limit_window: DurationSetting = Field(default=_DURATION_DEFAULTS["login_rate_limit_window"])
    login_rate_limit_max_attempts: int = Field(default=5, ge=1)
    refresh_rate_limit_window: DurationSetting = Field(default=_DURATION_DEFAULTS["refresh_rate_limit_window"])
    refresh_rate_limit_max_attempts: int = Field(default=100, ge=1)
    rate_limit_fallback_max_entries: int = Field(default=10000, ge=1)
    rate_limit_cleanup_interval: DurationSetting = Field(default=_DURATION_DEFAULTS["rate_limit_cleanup_interval"])

    # Application
    environment: Literal["dev", "prod", "test"] = Field(default="dev")
    debug: bool = Field(default=False)
    app_name: str = Field(default="sessionguard")
    app_version: str = Field(default="1.0.0")

    # CORS
    cors_origins: str = Field(default="http://localhost:3000")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("jwt_secret", "jwt_refresh_secret")
    @classmethod
    def validate_secret(cls, v: str, info: ValidationInfo) -> str:
        """Ensure signing secrets are provided and meet requirements."""
        if not v or len(v) < 32:
            raise ValueError(
                f"{info.field_name.upper()} must be set in environment and be at least 32 characters long"
            )
        return v

    @field_validator(
        "access_token_expires_in",
        "refresh_token_expires_in",
        "login_rate_limit_window",
        "refresh_rate_limit_window",
        "rate_limit_cleanup_interval",
        mode="before",
    )
    @classmethod
    def parse_duration(cls, v: Any, info: ValidationInfo) -> Duration:
        """Parse "15m"-style strings; fall back to the default on bad input."""
        if isinstance(v, Duration):
            return v
        if isinstance(v, int) and not isinstance(v, bool) and v >= 0:
            return Duration(seconds=v)

        try:
            return Duration.parse(v)
        except InvalidDurationException as exc:
            default = _DURATION_DEFAULTS[info.field_name]
            logger.warning(
                f"{exc.message} Using default {default} for {info.field_name.upper()}."
            )
            return default

    @model_validator(mode="after")
    def validate_admin_identity(self) -> "Settings":
        """The admin hash may only be absent outside production."""
        if self.is_production and not self.admin_password_hash:
            raise ValueError("ADMIN_PASSWORD_HASH must be set in production")
        if self.is_production and not self.admin_email:
            raise ValueError("ADMIN_EMAIL must be set in production")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "prod"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the application lifecycle.
    For testing, clear the cache with: get_settings.cache_clear()

    Returns:
        Settings instance loaded from environment
    """
    return Settings()
