"""
Settings for the chat ledger.

Values come from the process environment, with a local .env
file loaded first for development. Secrets such as the channel
secret are never given a real default.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:

    # Application
    APP_NAME: str = "Chat Ledger"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = _flag("DEBUG", "false")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./chat_ledger.db")
    # Create tables and seed default categories on startup.
    AUTO_CREATE_TABLES: bool = _flag("AUTO_CREATE_TABLES", "true")

    # Credentials
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Messaging platform
    # Signs every webhook body; an empty value rejects all calls.
    CHANNEL_SECRET: str = os.getenv("CHANNEL_SECRET", "")
    CONNECTION_CODE_TTL_MINUTES: int = int(
        os.getenv("CONNECTION_CODE_TTL_MINUTES", "10")
    )

    # Ledger
    # "Today", "this week" and "this month" are dates in this zone.
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Bangkok")
    RECENT_LIMIT_MAX: int = int(os.getenv("RECENT_LIMIT_MAX", "50"))


@lru_cache()
def get_settings() -> Settings:
    """Build Settings once per process."""
    return Settings()
