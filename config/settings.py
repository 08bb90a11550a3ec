from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # 1inch aggregation API (bearer key stays server-side)
    oneinch_api_key: str = ""
    oneinch_base_url: str = "https://api.1inch.dev"
    oneinch_max_rps: float = 1.0  # Dev portal free tier = 1 RPS
    api_cache_ttl_sec: float = 300.0  # 5 min response cache
    request_timeout_sec: float = 10.0  # Uniform per-request timeout

    # CoinGecko (token logos)
    coingecko_api_key: str = ""  # Demo key, optional
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_max_rps: float = 0.5  # Public tier ~30 calls/min
    logo_cache_ttl_sec: float = 86400.0  # 24h
    logo_lookup_timeout_sec: float = 2.0  # Per-token deadline during portfolio fetch

    # Redis (durable logo cache)
    redis_url: str = "redis://localhost:6379/0"
    enable_logo_persistence: bool = True

    # Portfolio store
    portfolio_refresh_interval_sec: int = 600  # 10 min auto-refresh
    default_target_allocations: dict[str, float] = Field(
        default_factory=lambda: {"ETH": 50.0, "WBTC": 30.0, "USDC": 20.0}
    )
    default_drift_threshold: float = 5.0
    demo_wallet_address: str = "0xc18360217d8f7ab5e7c516566761ea12ce7f9d72"

    # Dashboard API
    dashboard_enabled: bool = True
    dashboard_port: int = 8080
    proxy_rate_limit: str = "60/minute"


settings = Settings()
