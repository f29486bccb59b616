"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RateLimit(BaseModel):
    """Fixed-window request budget for one source."""

    max_requests: int = Field(ge=1)
    window_minutes: float = Field(gt=0)


class SourceSettings(BaseModel):
    """Per-source credential and request budget."""

    api_key: Optional[str] = None
    rate_limit: Optional[RateLimit] = None
    enabled: bool = True


def _default_sources() -> dict[str, SourceSettings]:
    return {
        name: SourceSettings(rate_limit=RateLimit(max_requests=5, window_minutes=1))
        for name in ("newsapi", "guardian", "new_york_times")
    }


def _merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, BaseModel):
            value = value.model_dump(exclude_unset=True)
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Newsdesk"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False)
    environment: Literal["development", "staging", "production", "testing"] = "development"
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./newsdesk.db",
        description="Async database URL (SQLAlchemy format)",
    )

    # Shared per-source state (circuit breakers, rate windows, caches)
    state_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = Field(default="redis://localhost:6379/0")

    # API keys (shortcuts for sources.<name>.api_key)
    newsapi_api_key: Optional[str] = Field(default=None)
    guardian_api_key: Optional[str] = Field(default=None)
    nytimes_api_key: Optional[str] = Field(default=None)

    sources: dict[str, SourceSettings] = Field(default_factory=_default_sources)

    # Resilience
    request_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Hard timeout for every outbound API call",
    )
    circuit_failure_threshold: int = Field(default=3, ge=1)
    circuit_reset_timeout_seconds: float = Field(default=60.0, gt=0)

    # Ingestion run
    minimum_sources_required: int = Field(default=1, ge=0)
    concurrent_fetch: bool = Field(default=False)
    max_concurrent_sources: int = Field(default=4, ge=1)
    fetch_cron: str = Field(
        default="0 * * * *",
        description="Crontab expression for scheduled ingestion runs",
    )

    # Caching
    latest_articles_count: int = Field(default=10, ge=1)
    latest_articles_ttl_seconds: int = Field(default=3600, ge=1)
    articles_cache_ttl_seconds: int = Field(default=300, ge=0)

    # Pagination
    default_page_size: int = Field(default=15, ge=1, le=100)
    max_page_size: int = Field(default=100, ge=1, le=500)

    @field_validator("sources", mode="before")
    @classmethod
    def merge_source_defaults(cls, value: Any) -> Any:
        """Configured sources override the defaults field by field."""
        if not isinstance(value, dict):
            return value
        defaults = {name: s.model_dump() for name, s in _default_sources().items()}
        return _merge(defaults, value)

    @model_validator(mode="after")
    def apply_api_key_shortcuts(self) -> "Settings":
        shortcuts = {
            "newsapi": self.newsapi_api_key,
            "guardian": self.guardian_api_key,
            "new_york_times": self.nytimes_api_key,
        }
        for name, key in shortcuts.items():
            if not key:
                continue
            source = self.sources.setdefault(name, SourceSettings())
            if not source.api_key:
                source.api_key = key
        return self

    def source(self, name: str) -> SourceSettings:
        """Settings for a source, or an unconfigured default."""
        return self.sources.get(name, SourceSettings())


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
