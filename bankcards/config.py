"""
Service settings, read once at import by pydantic-settings.

Values come from the process environment first, then a local .env file, then
the defaults below. Secrets (the JWT signing key and both card keys) have no
defaults, so a misconfigured deployment fails at import time instead of
running with a guessable key.

Usage:
    from bankcards.config import settings
    print(settings.ACCESS_TOKEN_EXPIRE_MINUTES)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Bank Cards service.

    Fields without a default must be provided:
      - SECRET_KEY: Used to sign JWT access tokens
      - CARD_ENCRYPTION_KEY: base64 of 32 random bytes (AES-256-GCM key)
      - CARD_LOOKUP_KEY: base64 of at least 32 random bytes (HMAC key for
        the card-number blind index). Must differ from CARD_ENCRYPTION_KEY.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Bank Cards API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Database ---
    # SQLite for local runs; swap to a postgresql+asyncpg URL for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/bankcards.db"

    # --- Authentication ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    TOKEN_ISSUER: str = "bankCards"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # --- Card Encryption ---
    # Generate with: python -c "import os, base64; print(base64.b64encode(os.urandom(32)).decode())"
    CARD_ENCRYPTION_KEY: str
    CARD_LOOKUP_KEY: str
    CARD_VALIDITY_DAYS: int = 5 * 365

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Shared instance; modules import this rather than building their own Settings()
settings = Settings()
