"""Client configuration using pydantic-settings."""
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Catalog API - base URL includes the /api prefix
    api_url: str = Field(
        default="http://localhost:5232/api",
        validation_alias="CATALOG_API_URL",
    )
    api_timeout: float = Field(default=30.0, validation_alias="CATALOG_API_TIMEOUT")

    # Where callers should send the user after an authorization failure
    login_path: str = Field(default="/login", validation_alias="CATALOG_LOGIN_PATH")

    # Role marker that grants catalog administration
    admin_role: str = Field(default="Admin", validation_alias="CATALOG_ADMIN_ROLE")

    # Session persistence - unset keeps the session in memory only
    session_file: Path | None = Field(default=None, validation_alias="CATALOG_SESSION_FILE")

    default_page_size: int = Field(default=10, ge=1, validation_alias="CATALOG_PAGE_SIZE")

    @model_validator(mode="after")
    def validate_api_url(self) -> "Settings":
        """Reject API URLs that httpx cannot use as a base URL."""
        parsed = urlparse(self.api_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                f"CATALOG_API_URL must be an absolute http(s) URL (got '{self.api_url}').",
            )
        return self

    @property
    def api_base_url(self) -> str:
        """API URL without a trailing slash so paths can be joined uniformly."""
        return self.api_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
