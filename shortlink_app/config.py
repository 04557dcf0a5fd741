from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Short Link Service"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Record store (links + analytics events)
    store_backend: str = "sqlalchemy"  # Options: "sqlalchemy", "memory"
    database_url: str = "sqlite:///./shortlinks.db"
    storage_timeout_seconds: float = 5.0

    # Short links
    base_url: str = "http://127.0.0.1:8000"
    short_code_length: int = 10
    not_found_redirect_url: Optional[str] = None  # None -> plain 404

    # Short code generation
    short_code_strategy: str = "remote"  # Options: "remote", "random"
    unique_code_backend: str = "store"  # Options: "store", "http"
    unique_code_rpc_url: Optional[str] = None
    unique_code_max_retries: int = 5
    unique_code_timeout_seconds: float = 2.0

    # Aggregation cache
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # Cache TTL in seconds (1 hour)

    # Analytics dispatch
    analytics_dispatch: str = "task"  # Options: "task", "queue"
    failure_sink_size: int = 100  # Recent recording failures kept for inspection

    # Queue settings (used when analytics_dispatch == "queue")
    queue_backend: str = "redis_streams"  # Options: "redis_streams", "memory"
    queue_name: str = "link_visits"
    queue_consumer_group: str = "visit_workers"
    queue_batch_size: int = 100
    queue_worker_interval: int = 5  # Worker poll interval in seconds

    # Geo-IP lookup
    geo_backend: str = "null"  # Options: "null", "http"
    geo_lookup_url: str = "http://ip-api.com/json"
    geo_timeout_seconds: float = 1.5

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
