"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ArchsearchSettings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="ARCHSEARCH_",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./archsearch.db",
        description="SQLAlchemy database URL",
    )

    # Paging
    page_size: int = Field(default=20, ge=1, description="Default results per page")
    max_page_size: int = Field(default=100, ge=1, description="Upper bound accepted for page size")

    # Client orchestration
    search_debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Quiet period before a primary search is issued",
    )
    suggest_debounce_ms: int = Field(
        default=150,
        ge=0,
        description="Quiet period before suggestions are requested",
    )
    suggestion_limit: int = Field(default=8, ge=1, description="Maximum suggestions returned")
    history_limit: int = Field(default=5, ge=1, description="Search history entries kept")
    history_dir: Optional[str] = Field(
        default=None,
        description="Directory for persisted search history (disabled when unset)",
    )

    # App settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> ArchsearchSettings:
    """Get cached settings instance."""
    return ArchsearchSettings()
