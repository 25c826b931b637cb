"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Remote store (PostgREST-style endpoint)
    remote_store_url: str = Field(
        default="http://localhost:54321",
        validation_alias="BOOKMARK_STORE_URL",
    )
    remote_store_api_key: str = Field(default="", validation_alias="BOOKMARK_STORE_API_KEY")
    collection_name: str = Field(default="book_mark", validation_alias="BOOKMARK_COLLECTION")
    request_timeout: float = Field(default=30.0, validation_alias="BOOKMARK_REQUEST_TIMEOUT")

    # Change feed
    feed_topic: str = Field(default="bookmarks-changes", validation_alias="BOOKMARK_FEED_TOPIC")
    feed_max_resubscribe_attempts: int = Field(
        default=5, validation_alias="BOOKMARK_FEED_MAX_RESUBSCRIBE_ATTEMPTS",
    )
    feed_resubscribe_delay: float = Field(
        default=1.0, validation_alias="BOOKMARK_FEED_RESUBSCRIBE_DELAY",
    )

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    @model_validator(mode="after")
    def validate_remote_store(self) -> "Settings":
        """Reject non-http store URLs and negative timing values."""
        scheme = urlparse(self.remote_store_url).scheme
        if scheme not in {"http", "https"}:
            raise ValueError(
                f"BOOKMARK_STORE_URL must be an http(s) URL (got '{self.remote_store_url}').",
            )
        if self.request_timeout <= 0:
            raise ValueError("BOOKMARK_REQUEST_TIMEOUT must be positive.")
        if self.feed_resubscribe_delay < 0:
            raise ValueError("BOOKMARK_FEED_RESUBSCRIBE_DELAY cannot be negative.")
        if self.feed_max_resubscribe_attempts < 0:
            raise ValueError("BOOKMARK_FEED_MAX_RESUBSCRIBE_ATTEMPTS cannot be negative.")
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def rest_url(self) -> str:
        """Get the REST root of the remote store."""
        return f"{self.remote_store_url.rstrip('/')}/rest/v1"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
