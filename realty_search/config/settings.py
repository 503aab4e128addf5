"""
Configuration Settings
Loads connection endpoints and tuning knobs from the environment / .env file.
"""

import json
from typing import Any, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..errors import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings.

    Typesense and database endpoints are required; everything else has a default.
    """

    # App info
    app_name: str = "Realty Search API"
    version: str = "0.1.0"
    description: str = "Listing search, personalization and index sync"
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Search engine (Typesense)
    typesense_host: str = Field(..., alias="TYPESENSE_HOST")
    typesense_api_key: str = Field(..., alias="TYPESENSE_API_KEY")
    typesense_protocol: str = Field(default="https", alias="TYPESENSE_PROTOCOL")
    typesense_port: Optional[int] = Field(default=None, alias="TYPESENSE_PORT")
    typesense_timeout_seconds: float = Field(default=10.0, alias="TYPESENSE_TIMEOUT_SECONDS")
    typesense_collection: str = Field(default="properties", alias="TYPESENSE_COLLECTION")

    # Primary store
    database_url: str = Field(..., alias="DATABASE_URL")
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")

    # Redis (Celery broker + sync lease)
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    # Sync
    sync_batch_size: int = Field(default=200, ge=1, alias="SYNC_BATCH_SIZE")
    sync_interval_seconds: int = Field(default=60, ge=1, alias="SYNC_INTERVAL_SECONDS")
    sync_use_lease: bool = Field(default=True, alias="SYNC_USE_LEASE")
    sync_lease_ttl_seconds: int = Field(default=900, ge=1, alias="SYNC_LEASE_TTL_SECONDS")

    # Query defaults
    default_country_id: int = Field(default=1, alias="DEFAULT_COUNTRY_ID")
    default_purpose: str = Field(default="for_sale", alias="DEFAULT_PURPOSE")
    default_page_size: int = Field(default=25, ge=1, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, ge=1, alias="MAX_PAGE_SIZE")
    featured_first: bool = Field(default=True, alias="FEATURED_FIRST")

    # API server
    host: str = Field(default="0.0.0.0", alias="API_HOST")
    port: int = Field(default=8000, alias="API_PORT")
    reload: bool = Field(default=False, alias="API_RELOAD")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        alias="API_CORS_ORIGINS",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> List[str]:
        """Parse CORS origins from JSON string or comma-separated list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def typesense_base_url(self) -> str:
        host = self.typesense_host.strip()
        if self.typesense_port:
            return f"{self.typesense_protocol}://{host}:{self.typesense_port}"
        return f"{self.typesense_protocol}://{host}"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get global settings (singleton).

    Raises:
        ConfigurationError: If a required endpoint or credential is missing
    """
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except ValidationError as e:
            missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise ConfigurationError(f"Invalid or missing settings: {', '.join(missing)}") from e
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
