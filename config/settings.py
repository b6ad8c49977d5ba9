"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )

    # ===================
    # WORKSPACE
    # ===================
    workspace_id: str = Field(
        default="marcenaria_track_default",
        min_length=1,
        description="Partition key stamped on every document"
    )

    # ===================
    # IMPORT LIMITS
    # ===================
    import_max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Largest accepted import file, in megabytes"
    )
    import_min_rows: int = Field(
        default=2,
        ge=1,
        description="Minimum number of lines (header included) in a CSV import"
    )
    preview_ttl_minutes: int = Field(
        default=30,
        ge=1,
        le=720,
        description="Minutes an import session is kept in memory"
    )

    # ===================
    # PROMOB LABEL GRID
    # ===================
    promob_grid_columns: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Label columns per Promob PDF page"
    )
    promob_grid_rows: int = Field(
        default=9,
        ge=1,
        le=30,
        description="Label rows per Promob PDF page"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def import_max_file_size_bytes(self) -> int:
        return self.import_max_file_size_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
