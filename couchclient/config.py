"""Client configuration loaded from environment variables.

This module centralizes connection settings so the client façade, the MCP
sample server and scripts read account, credential and retry settings from
one typed source.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed environment-backed configuration for the client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    couchdb_url: str = Field(default="http://localhost:5984", alias="COUCHDB_URL")
    couchdb_username: str = Field(default="", alias="COUCHDB_USERNAME")
    couchdb_password: str = Field(default="", alias="COUCHDB_PASSWORD")
    couchdb_db: str = Field(default="documents", alias="COUCHDB_DB")
    couchdb_auth: Literal["cookie", "basic", "none"] = Field(default="cookie", alias="COUCHDB_AUTH")
    couchdb_max_attempts: int = Field(default=10, ge=1, alias="COUCHDB_MAX_ATTEMPTS")
    couchdb_timeout_seconds: float = Field(default=30.0, gt=0, alias="COUCHDB_TIMEOUT_SECONDS")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance for the current process."""

    return Settings()
