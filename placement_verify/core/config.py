"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "Placement Verification API"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/v1"
    cors_origins: List[str] = ["*"]

    # Identity store: "memory" for local runs, "sql" for a real database
    store_backend: str = "memory"
    database_url: str = "sqlite:///./placement_verify.db"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    @property
    def uses_sql_store(self) -> bool:
        """True when the identity store should be backed by SQLAlchemy."""
        return self.store_backend.strip().lower() == "sql"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PLACEMENT_",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
