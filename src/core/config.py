"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables. Nothing here is
    a credential: access tokens and phone number IDs arrive per request.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="business-profile-manager", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    # Graph API
    graph_api_base_url: str = Field(
        default="https://graph.facebook.com",
        description="Graph API host, without the version segment",
    )
    graph_api_version: str = Field(default="v23.0", description="Graph API version segment")
    graph_timeout_seconds: float = Field(default=30.0, description="Timeout for each outbound Graph API call")
    messaging_product: str = Field(
        default="whatsapp",
        description="Protocol discriminator added to every profile write",
    )
    app_id: str = Field(
        default="",
        description="Meta app ID used for upload sessions. Empty disables photo upload.",
    )

    # Limits
    max_photo_bytes: int = Field(default=5 * 1024 * 1024, description="Largest accepted profile photo in bytes")
    max_request_body_size: int = Field(
        default=6 * 1024 * 1024,
        description="Maximum accepted request body size in bytes",
    )

    @field_validator("graph_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize the base URL so paths can be joined with a single slash."""
        return value.rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def graph_api_root(self) -> str:
        """Versioned Graph API root, e.g. https://graph.facebook.com/v23.0."""
        return f"{self.graph_api_base_url}/{self.graph_api_version}"

    @property
    def photo_upload_enabled(self) -> bool:
        """Photo upload needs an app ID to open upload sessions against."""
        return bool(self.app_id.strip())

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
