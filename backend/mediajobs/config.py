"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """mediajobs settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "mediajobs"
    DEBUG: bool = False
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # --- Database (MySQL 8.0+) ---
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "mediajobs"
    DATABASE_URL_OVERRIDE: str = ""

    @property
    def DATABASE_URL(self) -> str:
        """Async MySQL connection string using asyncmy driver."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        encoded_password = quote_plus(self.DB_PASSWORD)
        return (
            f"mysql+asyncmy://{self.DB_USER}:{encoded_password}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            "?charset=utf8mb4"
        )

    # --- Redis (Celery broker, poll locks, job update pub/sub) ---
    REDIS_URL: str = "redis://localhost:6379/0"

    # --- Replicate ---
    REPLICATE_API_TOKEN: str = ""
    REPLICATE_BASE_URL: str = "https://api.replicate.com/v1"

    # --- fal.ai queue ---
    FAL_KEY: str = ""
    FAL_QUEUE_URL: str = "https://queue.fal.run"

    # --- Google Cloud Vertex AI ---
    GOOGLE_CLOUD_PROJECT: str = ""
    GOOGLE_CLOUD_LOCATION: str = "us-central1"
    GOOGLE_CLOUD_ACCESS_TOKEN: str = ""

    # --- Provider HTTP ---
    PROVIDER_TIMEOUT: float = 30.0

    # --- Webhooks ---
    # Public base URL providers call back into; empty disables webhook URLs.
    WEBHOOK_BASE_URL: str = ""

    # --- Polling ---
    POLL_INTERVAL_SECONDS: float = 5.0
    POLL_BACKOFF_MULTIPLIER: float = 1.0  # 1.0 = fixed interval
    POLL_MAX_INTERVAL_SECONDS: float = 300.0
    MAX_POLL_ATTEMPTS: int = 100
    POLL_SCAN_SECONDS: float = 10.0
    POLL_LOCK_TTL_SECONDS: int = 120

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
