"""
tablebridge - Configuration and settings.

Settings are read from the environment and an optional .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Only DATABASE_URL is required. It is passed verbatim to SQLAlchemy,
    e.g. ``mssql+pyodbc://...`` or ``postgresql+psycopg2://...``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str
    database_pool_size: int = 5
    database_echo: bool = False

    # Application
    tablebridge_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # HTTP
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = []

    @property
    def is_development(self) -> bool:
        return self.tablebridge_env == "development"

    @property
    def is_production(self) -> bool:
        return self.tablebridge_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
