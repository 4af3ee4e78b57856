from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Supabase auth
    # Placeholder values keep local/test runs from failing when Supabase
    # credentials are not required. Real deployments should override via env.
    SUPABASE_JWT_SECRET: str = "test-jwt-secret"

    # Storefront
    FRONTEND_URL: str = "http://localhost:5173"
    STORE_NAME: str = "BelléaWigs"
    STORE_CONTACT_EMAIL: str = "client@belleawigs.com"
    CHECKOUT_PAYLOAD_TTL_MINUTES: int = 60

    # Moneroo (hosted checkout)
    MONEROO_API_BASE_URL: str = "https://api.moneroo.io/v1"
    MONEROO_SECRET_KEY: Optional[str] = None
    MONEROO_WEBHOOK_SECRET: Optional[str] = None

    # Twilio WhatsApp order alerts
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_WHATSAPP_FROM: str = "whatsapp:+14155238886"
    ADMIN_WHATSAPP_TO: Optional[str] = None

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


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
