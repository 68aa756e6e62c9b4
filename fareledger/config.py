"""
Configuration settings for the fare ledger client.

Uses Pydantic Settings to load environment variables for the ledger backend,
database connection, identity, pricing band and logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Ledger
    ledger_backend: str = Field("memory", alias="LEDGER_BACKEND")
    ledger_table: str = Field("ledger_entries", alias="LEDGER_TABLE")
    ledger_timeout_seconds: float = Field(5.0, alias="LEDGER_TIMEOUT_SECONDS")

    # Database (postgres backend)
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("fare_ledger", alias="DB_NAME")

    # Identity
    principal: Optional[str] = Field(None, alias="LEDGER_PRINCIPAL")

    # Pricing band for simulated analysis
    price_min: int = Field(300, alias="PRICE_MIN")
    price_max: int = Field(999, alias="PRICE_MAX")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
