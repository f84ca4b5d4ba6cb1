from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUOTE_ENGINE_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )
    yahoo_base_url: str = "https://query1.finance.yahoo.com/v8/finance/chart"
    binance_base_url: str = "https://api.binance.com/api/v3"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    brasilapi_base_url: str = "https://brasilapi.com.br/api"
    exchange_rate_url: str = "https://api.exchangerate-api.com/v4/latest/USD"
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    timeout_seconds: float = 10.0
    b3_suffix: str = ".SA"


class CacheSettings(BaseModel):
    intraday_ttl_seconds: int = 5 * 60
    historical_ttl_seconds: int = 30 * 60
    crypto_historical_ttl_seconds: int = 24 * 60 * 60
    crypto_current_ttl_seconds: int = 60 * 60
    current_ttl_seconds: int = 30 * 60
    exchange_rate_ttl_seconds: int = 60 * 60
    index_rate_ttl_seconds: int = 60 * 60


class BackoffSettings(BaseModel):
    ssl_seconds: int = 5 * 60
    rate_limit_seconds: int = 10 * 60
    general_seconds: int = 2 * 60


class FallbackSettings(BaseModel):
    usd_brl: float = 6.0
    selic: float = 10.5
    ipca: float = 4.62
    cdi_spread: float = 0.15
    fixed_income_reference_value: float = 1000.0


class SymbolSettings(BaseModel):
    binance_pairs: Dict[str, str] = Field(
        default_factory=lambda: {
            "BTC": "BTCUSDT",
            "ETH": "ETHUSDT",
            "BNB": "BNBUSDT",
            "ADA": "ADAUSDT",
            "SOL": "SOLUSDT",
            "XRP": "XRPUSDT",
            "DOGE": "DOGEUSDT",
            "DOT": "DOTUSDT",
            "MATIC": "MATICUSDT",
            "LTC": "LTCUSDT",
            "BITCOIN": "BTCUSDT",
            "ETHEREUM": "ETHUSDT",
            "BINANCECOIN": "BNBUSDT",
            "BINANCE COIN": "BNBUSDT",
            "CARDANO": "ADAUSDT",
            "SOLANA": "SOLUSDT",
            "RIPPLE": "XRPUSDT",
            "DOGECOIN": "DOGEUSDT",
            "POLKADOT": "DOTUSDT",
            "POLYGON": "MATICUSDT",
            "LITECOIN": "LTCUSDT",
        }
    )
    coingecko_ids: Dict[str, str] = Field(
        default_factory=lambda: {
            "BTC": "bitcoin",
            "ETH": "ethereum",
            "BNB": "binancecoin",
            "ADA": "cardano",
            "SOL": "solana",
            "XRP": "ripple",
            "DOGE": "dogecoin",
            "DOT": "polkadot",
            "MATIC": "matic-network",
            "LTC": "litecoin",
            "BITCOIN": "bitcoin",
            "ETHEREUM": "ethereum",
            "BINANCECOIN": "binancecoin",
            "BINANCE COIN": "binancecoin",
            "CARDANO": "cardano",
            "SOLANA": "solana",
            "RIPPLE": "ripple",
            "DOGECOIN": "dogecoin",
            "POLKADOT": "polkadot",
            "POLYGON": "matic-network",
            "LITECOIN": "litecoin",
        }
    )
    asset_names: Dict[str, str] = Field(
        default_factory=lambda: {
            "ITUB4": "Itaú Unibanco",
            "PETR4": "Petrobras",
            "VALE3": "Vale",
            "BBDC4": "Banco Bradesco",
            "ABEV3": "Ambev",
            "AAPL": "Apple Inc.",
            "MSFT": "Microsoft Corporation",
            "GOOGL": "Alphabet Inc.",
            "AMZN": "Amazon.com Inc.",
            "TSLA": "Tesla Inc.",
            "BTC": "Bitcoin",
            "ETH": "Ethereum",
        }
    )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUOTE_ENGINE_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    janitor_interval_seconds: int = 30 * 60

    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    backoff: BackoffSettings = Field(default_factory=BackoffSettings)
    fallback: FallbackSettings = Field(default_factory=FallbackSettings)
    symbols: SymbolSettings = Field(default_factory=SymbolSettings)


settings = Settings()
