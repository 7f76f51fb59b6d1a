# catalog_hub/settings.py
"""
Catalog Hub Settings - PostgreSQL backed product catalog.
"""
from __future__ import annotations
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices

class Settings(BaseSettings):
    # =========================================================================
    # PostgreSQL Database
    # =========================================================================
    DB_HOST: str = Field(default="localhost", validation_alias="DB_HOST")
    DB_PORT: int = Field(default=5432, validation_alias="DB_PORT")
    DB_NAME: str = Field(default="catalog_hub", validation_alias="DB_NAME")
    DB_USER: str = Field(default="postgres", validation_alias="DB_USER")
    DB_PASSWORD: str = Field(default="postgres", validation_alias="DB_PASSWORD")

    # Full async URL override (sqlite+aiosqlite:// for local runs)
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "CATALOG_DB_URL"),
    )

    # Connection pool settings
    DB_POOL_SIZE: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    DB_MAX_OVERFLOW: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    DB_ECHO: bool = Field(default=False, validation_alias="DB_ECHO")
    # create tables on startup (dev/sqlite only; production runs migrations)
    DB_CREATE_TABLES: bool = Field(default=False, validation_alias="DB_CREATE_TABLES")

    # =========================================================================
    # Logging
    # =========================================================================
    LOG_DIR: Path = Field(
        default=(Path(__file__).resolve().parents[2] / "catalog-data" / "logs"),
        validation_alias=AliasChoices("LOG_DIR", "CATALOG_LOG_DIR"),
    )
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_CONSOLE: bool = Field(default=False, validation_alias="LOG_CONSOLE")

    # =========================================================================
    # Catalog defaults
    # =========================================================================
    DEFAULT_UOM_ID: int = Field(
        default=1,
        description="Unit of measure assigned to fixed-asset products",
    )
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1)

    CORS_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:8000",
        ]
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()
