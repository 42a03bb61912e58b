from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below

    Components never read settings on their own; the values they need are
    handed to them when dependencies.py builds them.
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Scanlink"
    app_version: str = "1.0.0"

    # Database (links + scan events)
    database_url: str = "sqlite:///./scanlink.db"

    # Public host used to build trackable content: {base_url}/r/{code}
    base_url: str = "http://127.0.0.1:8000"

    # Short code generation
    short_code_length: int = 6
    short_code_max_attempts: int = 3

    # Rate limiting on the public redirect route
    rate_limit_backend: str = "redis"  # Options: "redis", "memory"
    redis_url: str = "redis://localhost:6379/0"
    rate_limit_requests: int = 200
    rate_limit_window_seconds: int = 60
    # Peers whose X-Forwarded-For is believed (addresses or CIDR networks)
    trusted_proxies: List[str] = ["127.0.0.1", "::1"]

    # Background scan recording
    recorder_max_workers: int = 4
    recorder_max_pending: int = 1000

    # Analytics
    default_range_days: int = 7

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
