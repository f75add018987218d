"""Application configuration from environment variables.

Settings are read from the process environment, with a .env file in the
working directory loaded first when present.
"""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = Field(
        default="sqlite:///./roomledger.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Payment gateway
    paystack_secret_key: str = Field(default="", description="Paystack secret key")
    paystack_base_url: str = Field(
        default="https://api.paystack.co", description="Paystack API base URL"
    )
    gateway_timeout_seconds: float = Field(
        default=15.0, description="Timeout for gateway verification calls"
    )
    currency: str = Field(default="NGN", description="Currency recorded on payments")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # API
    api_title: str = Field(default="RoomLedger API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")


@lru_cache
def get_settings() -> Settings:
    """
    Load settings once per process.

    Priority (highest to lowest):
    1. Environment variables (DATABASE_URL, PAYSTACK_SECRET_KEY, etc.)
    2. .env file in the working directory
    3. Default values

    Returns:
        Settings instance shared by the process
    """
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)
    return Settings()


__all__ = ["Settings", "get_settings"]
