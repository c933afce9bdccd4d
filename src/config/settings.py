"""
Centralized settings management using pydantic-settings.

Runtime knobs of the discovery engine are defined here and read from the
environment (or a ``.env`` file at the project root). Use get_settings() to
access the cached instance.

Rule weights and classification thresholds are deliberately not settings;
they live as named constants in ``discovery.constants``.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class Settings(BaseSettings):
    """
    Discovery engine settings loaded from environment variables.

    All values have defaults; common overrides:
        - LOG_LEVEL / JSON_LOGS: logging output
        - CATEGORY_INDEX_TTL_SECONDS: age after which the category snapshot is stale.
          Only acted on by the CATEGORY_INDEX_AUTO_REFRESH timer or by a host
          calling DiscoveryService.refresh_categories_if_stale(); requests never
          rebuild a stale snapshot themselves.
        - NEW_ITEM_WINDOW_DAYS: how recent an item must be to count as "new"
        - STRICT_FILTER_SCAN_LIMIT: candidates fetched before strict gender filtering
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
                raise ValueError(f"invalid log level: {v}")
        return v

    # ==========================================================================
    # Category Index
    # ==========================================================================
    category_index_ttl_seconds: int = Field(
        default=300, ge=1, description="Seconds before the category snapshot counts as stale"
    )
    category_index_auto_refresh: bool = Field(
        default=False, description="Rebuild the category snapshot every TTL seconds on a background thread"
    )

    # ==========================================================================
    # Filtering & Pagination
    # ==========================================================================
    new_item_window_days: int = Field(default=30, ge=1, description="Window for the 'new' flag")
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=2000, ge=1)
    max_search_length: int = Field(default=200, ge=1)
    strict_filter_scan_limit: int = Field(
        default=2000, ge=1, description="Candidates fetched before strict gender filtering"
    )
    random_sample_size: int = Field(default=1000, ge=1)
    suggestion_limit: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def validate_page_sizes(self):
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size cannot exceed max_page_size")
        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: The application settings (cached after first call)
    """
    return Settings(_env_file=_ENV_FILE if _ENV_FILE.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing, bypassing the cache.

    Args:
        **overrides: Setting values to override

    Returns:
        Settings: A new settings instance with overrides applied
    """
    test_defaults = {"environment": "testing", "debug": True}
    test_defaults.update(overrides)
    return Settings(_env_file=None, **test_defaults)
