from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Alpha Screener"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # AI judgment
    openai_api_key: str | None = None
    judgment_model: str = "gpt-4o-mini"
    judgment_temperature: float = 0.2
    judgment_retry_attempts: int = 3
    judgment_retry_backoff_seconds: float = 0.5

    # Providers
    messari_api_key: str | None = None
    cryptorank_api_key: str | None = None
    coingecko_api_key: str | None = None
    coinmarketcap_api_key: str | None = None
    github_token: str | None = None
    provider_timeout_seconds: float = 15.0
    documentation_timeout_seconds: float = 30.0

    # Cache
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = False
    cache_ttl_seconds: int = 3600

    # Pipeline
    analysis_parallel_stages: bool = True
    analysis_dedupe_inflight: bool = True
    documentation_max_chars: int = 50_000
    team_documentation_max_chars: int = 20_000

    # Metrics
    metrics_disable: bool = False
    metrics_namespace: str = "alpha_screener"
    metrics_sample_rate: float = 1.0

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
