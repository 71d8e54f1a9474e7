"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. Nothing here is secret: user credentials live in the
database as SHA-256 digests and are never part of the process configuration.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from ledger_api.config import get_settings
    settings = get_settings()
    print(settings.DATABASE_URL)
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Ledger API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Banking Ledger API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # All business endpoints are mounted under this prefix; /health is not.
    API_PREFIX: str = "/api"

    # --- Server ---
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    # In-flight requests get this long to drain after SIGTERM/SIGINT
    SHUTDOWN_TIMEOUT_SECONDS: int = 10

    # --- Database ---
    # SQLite by default; use postgresql+asyncpg://... for row-level locking
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/ledger.db"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once on first use."""
    return Settings()
