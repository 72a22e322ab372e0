"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. This keeps secrets (the JWT signing key, SMS gateway credentials)
out of source code.

Pydantic Settings resolves values in this order:
  1. Environment variables (highest priority)
  2. .env file values
  3. Defaults defined here (lowest priority)

Usage:
    from theycare.config import settings
    print(settings.OTP_EXPIRE_MINUTES)
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the TheyCare Portal API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign session tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "TheyCare Portal API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "production", "test"] = "development"
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local use; point at PostgreSQL (asyncpg) in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/theycare.db"

    # --- Session tokens ---
    # REQUIRED: no default, the deployer must set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # --- One-time codes ---
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 15
    OTP_MAX_ATTEMPTS: int = 5
    # Codes sent per (purpose, key) within the window before further sends are refused
    OTP_SEND_LIMIT: int = 3
    OTP_SEND_WINDOW_MINUTES: int = 60

    # "console" logs codes for local development; "telerivet" sends real SMS
    OTP_CHANNEL: Literal["console", "telerivet"] = "console"
    OTP_DISPATCH_TIMEOUT_SECONDS: float = 10.0
    TELERIVET_API_KEY: str | None = None
    TELERIVET_PROJECT_ID: str | None = None
    TELERIVET_API_URL: str = "https://api.telerivet.com/v1"

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
