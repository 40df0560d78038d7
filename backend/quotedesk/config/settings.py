from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_BACKEND_DIR = Path(__file__).resolve().parents[2]


class ProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUOTEDESK_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    yahoo_base_url: str = "https://query1.finance.yahoo.com"
    yahoo_min_interval_seconds: float = 1.0
    yahoo_timeout_seconds: float = 8.0
    rate_limit_cooldown_seconds: float = 5.0

    alpha_vantage_base_url: str = "https://www.alphavantage.co"
    alpha_vantage_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "ALPHA_VANTAGE_API_KEY", "QUOTEDESK_ALPHA_VANTAGE_API_KEY"
        ),
    )
    alpha_vantage_min_interval_seconds: float = 1.0
    alpha_vantage_timeout_seconds: float = 10.0

    google_finance_base_url: str = "https://www.google.com/finance"
    fundamentals_exchange: str = "NSE"
    fundamentals_timeout_seconds: float = 10.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUOTEDESK_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("NEXT_PUBLIC_APP_URL", "QUOTEDESK_APP_BASE_URL"),
    )
    log_level: str = "INFO"

    quote_cache_ttl_seconds: float = 5 * 60
    historical_cache_ttl_seconds: float = 24 * 60 * 60
    cache_sweep_interval_seconds: float = 60 * 60

    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=2.0, ge=0)

    holdings_path: str = str(_BACKEND_DIR / "data" / "portfolio.json")
    holding_symbol_suffix: str = ".NS"

    providers: ProviderSettings = Field(default_factory=ProviderSettings)


settings = Settings()
