"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Nothing here is required at import time: each operation checks the
values it needs and fails fast with ConfigurationError.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
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
        default="",
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        default="",
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # MAGAZORD (UPSTREAM ERP)
    # ===================
    magazord_base_url: str = Field(
        default="",
        description="Magazord API base URL"
    )
    magazord_token: str = Field(
        default="",
        description="Magazord API token (Basic auth user)"
    )
    magazord_secret: str = Field(
        default="",
        description="Magazord API secret (Basic auth password)"
    )
    magazord_loja_id: int = Field(
        default=1,
        ge=1,
        description="Magazord store id used by the catalog listing"
    )
    magazord_cdn_base_url: str = Field(
        default="",
        description="CDN base for relative product media paths"
    )
    magazord_deposito_id: Optional[str] = Field(
        None,
        description="Default warehouse for inventory reads and movements"
    )
    magazord_tabela_preco_id: Optional[str] = Field(
        None,
        description="Default price list for price reads and writes"
    )

    # ===================
    # SYNC / ENRICHMENT
    # ===================
    sync_max_pages: int = Field(
        default=5000,
        ge=1,
        description="Hard ceiling on pages walked by one catalog sync"
    )
    sync_page_limit: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Items requested per upstream catalog page"
    )
    enrichment_pool_size: int = Field(
        default=4,
        ge=1,
        le=16,
        description="Concurrent workers fetching live inventory/price"
    )
    enrichment_request_delay_seconds: float = Field(
        default=0.12,
        ge=0,
        description="Pause each worker takes after every upstream request"
    )
    enrichment_rate_limit_delay_seconds: float = Field(
        default=0.8,
        ge=0,
        description="Pause before retrying a SKU that got HTTP 429"
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

    @field_validator("magazord_base_url", "magazord_cdn_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Base URLs are joined with '/', so drop any trailing one."""
        return (v or "").strip().rstrip("/")

    @field_validator("magazord_token", "magazord_secret")
    @classmethod
    def strip_credentials(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("magazord_deposito_id", "magazord_tabela_preco_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def magazord_configured(self) -> bool:
        """Base URL and both credential halves are present."""
        return bool(self.magazord_base_url and self.magazord_token and self.magazord_secret)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
