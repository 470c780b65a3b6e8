"""Client configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Client settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "crm-data-client"

    # Backend API
    API_BASE_URL: str = "http://10.0.2.2:3000"  # Android emulator default
    API_TIMEOUT: float = 10.0
    API_LOGIN_PATH: str = "/auth/login"

    # List pagination
    LIST_PAGE_LIMIT: int = 40
    FALLBACK_PAGE_SIZE: int = 25

    # Bounded retry for recovery flows
    RECOVERY_MAX_ATTEMPTS: int = 4
    RECOVERY_RETRY_DELAY_MS: int = 160

    # Bounded retry for session re-verification
    AUTH_GUARD_MAX_ATTEMPTS: int = 6
    AUTH_GUARD_RETRY_DELAY_MS: int = 140


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
