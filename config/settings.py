"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


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
    # IMPORT SERVICE
    # ===================
    import_service_url: str = Field(
        default="http://localhost:8080/api",
        description="Base URL of the backend import service"
    )
    import_service_api_key: Optional[str] = Field(
        None,
        description="Bearer token sent to the import service"
    )
    import_service_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout for a single import service request"
    )

    # ===================
    # WIZARD
    # ===================
    accepted_formats: list[str] = Field(
        default_factory=lambda: [".csv"],
        description="File extensions accepted for upload"
    )
    reject_duplicate_columns: bool = Field(
        default=True,
        description="Reject mapping two fields to the same CSV column"
    )
    session_ttl_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Minutes an idle wizard session is kept in memory"
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
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        description="Origins allowed by the CORS middleware"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def import_service_configured(self) -> bool:
        """Check if the import service has credentials."""
        return bool(self.import_service_url and self.import_service_api_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
