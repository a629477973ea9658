"""
Application configuration.

Loads settings from environment variables (and an optional `.env` file).
Settings are built once at startup and handed to services explicitly;
request-handling code never reads the environment.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = Field(default="development", validation_alias=AliasChoices("environment", "NODE_ENV"))
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = Field(default=5001, validation_alias=AliasChoices("api_port", "PORT"))
    cors_origins: str = "http://localhost:5173"

    # ==========================================================================
    # Authentication
    # ==========================================================================

    # No default: token issuance fails closed when this is unset.
    secret_token: str = ""
    token_ttl_seconds: int = 24 * 60 * 60
    password_hash_rounds: int = 10
    session_cookie_name: str = "token"

    # ==========================================================================
    # Uploads
    # ==========================================================================

    upload_field_name: str = "product_image"
    upload_max_bytes: int = 5 * 1024 * 1024
    upload_folder: str = "ecommerce-images"
    image_max_width: int = 500
    image_max_height: int = 500
    blob_store_timeout_seconds: float = 30.0

    # ==========================================================================
    # Storage
    # ==========================================================================

    data_dir: str = "./data"
    public_base_url: str = ""

    # Cloudinary (optional; local filesystem storage is used when unset)
    cloud_name: str = ""
    api_key: str = ""
    api_secret: str = ""

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def use_cloudinary(self) -> bool:
        """Whether uploads should go to Cloudinary."""
        return bool(self.cloud_name and self.api_key and self.api_secret)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
