from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-aware configuration (database provider, connection strings)."""

    # Application
    APP_NAME: str = "Multi-Database Product API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_PROVIDER: str = "MSSQL"
    POSTGRESQL_CONNECTION_STRING: Optional[str] = None
    MSSQL_CONNECTION_STRING: Optional[str] = None

    # None means "migrate only in development"
    AUTO_MIGRATE: Optional[bool] = None

    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "development"

    @property
    def should_auto_migrate(self) -> bool:
        if self.AUTO_MIGRATE is None:
            return self.is_development
        return self.AUTO_MIGRATE


@lru_cache
def get_settings() -> Settings:
    """Provide singleton-like access for dependency injection."""
    return Settings()
