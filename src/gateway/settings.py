from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    vin_cache_ttl_seconds: int = Field(default=2_592_000, alias="VIN_CACHE_TTL_SECONDS")

    # Public data sources
    nhtsa_base_url: str = Field(default="https://vpic.nhtsa.dot.gov/api/vehicles", alias="NHTSA_BASE_URL")
    recalls_base_url: str = Field(default="https://api.nhtsa.gov", alias="RECALLS_BASE_URL")
    fema_base_url: str = Field(default="https://www.fema.gov/api/open/v2", alias="FEMA_BASE_URL")

    # Listing / history providers
    history_api_key: str = Field(default="", alias="HISTORY_API_KEY")
    history_base_url: str = Field(default="https://auto.dev/api", alias="HISTORY_BASE_URL")
    market_api_key: str = Field(default="", alias="MARKET_API_KEY")
    market_base_url: str = Field(default="https://auto.dev/api", alias="MARKET_BASE_URL")
    sales_api_key: str = Field(default="", alias="SALES_API_KEY")
    sales_base_url: str = Field(default="https://mc-api.marketcheck.com/v2", alias="SALES_BASE_URL")
    seller_api_key: str = Field(default="", alias="SELLER_API_KEY")
    seller_base_url: str = Field(default="", alias="SELLER_BASE_URL")

    # Per-collaborator timeouts
    vin_decode_timeout_seconds: float = Field(default=2.0, alias="VIN_DECODE_TIMEOUT_SECONDS")
    history_timeout_seconds: float = Field(default=15.0, alias="HISTORY_TIMEOUT_SECONDS")
    market_timeout_seconds: float = Field(default=15.0, alias="MARKET_TIMEOUT_SECONDS")
    disaster_timeout_seconds: float = Field(default=10.0, alias="DISASTER_TIMEOUT_SECONDS")
    recalls_timeout_seconds: float = Field(default=10.0, alias="RECALLS_TIMEOUT_SECONDS")
    seller_timeout_seconds: float = Field(default=10.0, alias="SELLER_TIMEOUT_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")
