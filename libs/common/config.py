from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "test", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    ADMIN_EMAIL: str = "admin@ashhadu.co.uk"
    SUPPORT_EMAIL: str = "support@ashhadu.co.uk"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "https://ashhadu.co.uk",
        "https://www.ashhadu.co.uk",
    ]

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Supabase (auth only; tokens are verified locally)
    SUPABASE_URL: str = "http://localhost"
    SUPABASE_JWT_SECRET: str = "test-jwt-secret"

    # Email (SMTP)
    SMTP_HOST: str = "smtp-relay.brevo.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    DEFAULT_FROM_EMAIL: str = "orders@ashhadu.co.uk"
    DEFAULT_FROM_NAME: str = "Ashhadu"

    # Store defaults
    STORE_DEFAULT_CURRENCY: str = "GBP"
    STORE_DEFAULT_COUNTRY: str = "GB"
    ORDER_NUMBER_PREFIX: str = "ASH"
    URGENT_ORDER_THRESHOLD: float = 200.0
    DEFAULT_LOW_STOCK_THRESHOLD: int = 5

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    DEFAULT_RATE_LIMIT: str = "100/minute"
    CHECKOUT_RATE_LIMIT: str = "10/minute"
    ADMIN_RATE_LIMIT: str = "200/minute"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
