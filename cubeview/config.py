"""
Configuration settings for cubeview.

Uses Pydantic Settings to load environment variables for the database
connection, the query API, the data model location and logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("cubeview", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(30_000, alias="DB_STATEMENT_TIMEOUT_MS")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Query API
    api_host: str = Field("127.0.0.1", alias="API_HOST")
    api_port: int = Field(4000, alias="API_PORT")
    cube_api_url: str = Field("http://127.0.0.1:4000", alias="CUBE_API_URL")
    model_path: Optional[str] = Field(None, alias="MODEL_PATH")
    query_default_limit: int = Field(10_000, alias="QUERY_DEFAULT_LIMIT")
    query_max_limit: int = Field(50_000, alias="QUERY_MAX_LIMIT")
    query_cache_ttl_seconds: float = Field(10.0, alias="QUERY_CACHE_TTL_SECONDS")

    # Ingestion
    load_batch_size: int = Field(5_000, alias="LOAD_BATCH_SIZE")

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
