"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://oms:oms_dev_password@db:5432/oms"
    store_backend: str = "sqlalchemy"  # 'sqlalchemy' or 'memory'

    # Unit of work retries (conflicts and transient store failures)
    uow_max_retries: int = 3
    uow_retry_backoff_seconds: float = 0.05

    # Cache
    redis_url: str = "redis://redis:6379/0"
    cache_backend: str = "redis"  # 'redis' or 'memory'
    cache_ttl_seconds: int = 300

    # Event sink
    event_sink_backend: str = "redis"  # 'redis', 'memory' or 'log'
    event_stream_prefix: str = "oms.events"

    # Domain defaults
    default_currency: str = "USD"
    default_min_stock_threshold: int = 10
    low_stock_alert_ttl_hours: int = 24
    deletion_alternatives_limit: int = 5

    # Authentication
    oms_api_key: str = "dev-api-key-change-in-production"

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
