"""Configuration management using pydantic-settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (``TCG_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="TCG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    default_format: str = Field(
        default="standard",
        description="Format used when a deck file does not name one",
    )

    # Analysis cache
    analysis_cache_max_size: int = Field(
        default=512,
        ge=1,
        description="Maximum number of analysis results kept by an AnalysisCache",
    )

    # Archetype classification
    archetype_secondary_margin: int = Field(
        default=15,
        ge=0,
        le=100,
        description="Runner-up archetypes within this many points become the secondary archetype",
    )
    archetype_floor: int = Field(
        default=25,
        ge=0,
        le=100,
        description="Minimum normalized signature score for an archetype to count as a match",
    )

    # Optimization
    max_changes: int = Field(
        default=10,
        ge=0,
        description="Default cap on substitutions per optimization run",
    )
    candidate_pool_size: int = Field(
        default=12,
        ge=1,
        description="Replacement cards considered per optimization step",
    )
    removal_pool_size: int = Field(
        default=8,
        ge=1,
        description="Current cards considered for removal per optimization step",
    )
    optimization_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Wall-clock budget for a single optimization run (None = unbounded)",
    )
    want_list_size: int = Field(
        default=5,
        ge=0,
        description="Maximum entries in a collection build want-list",
    )


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get engine settings (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
