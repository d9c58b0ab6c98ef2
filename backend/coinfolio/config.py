"""Application configuration."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = "sqlite:///./coinfolio.db"

    # Market data (CoinGecko)
    coingecko_api_key: str = ""
    coingecko_use_pro_api: bool = False
    market_data_timeout_seconds: float = 15.0
    market_data_cache_ttl_seconds: int = 60

    # News (CryptoCompare)
    news_api_key: str = ""

    # Dashboard
    dashboard_cache_ttl_seconds: int = 300
    dashboard_max_workers: int = 9

    # Staking
    early_withdrawal_penalty_pct: Decimal = Decimal("10")

    # Snapshots
    snapshot_retention_days: int = 730
    risk_free_rate_pct: Decimal = Decimal("2")

    # Live prices (Binance ticker stream)
    price_stream_url: str = "wss://stream.binance.com:9443/ws"
    price_stream_max_reconnect_attempts: int = 5
    price_stream_reconnect_delay_seconds: float = 1.0
    price_stream_enabled: bool = True

    # Application
    log_level: str = "INFO"
    debug: bool = True

    # CORS
    allowed_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


settings = Settings()
