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
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )
    
    # ===================
    # PRODUCT MATCHING
    # ===================
    match_threshold: float = Field(
        default=0.6,
        ge=0,
        le=1,
        description="Score a candidate must exceed to be proposed as the existing product"
    )
    match_brand_boost: float = Field(
        default=0.2,
        ge=0,
        le=1,
        description="Bonus added to the name score when both brands agree"
    )
    match_brand_threshold: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Brand similarity that must be exceeded to apply the boost"
    )
    match_candidate_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum candidates shown in a match proposal (applied after ranking)"
    )
    
    # ===================
    # IMPORT
    # ===================
    import_write_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Extra attempts for a failed persistence write during batch import"
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
