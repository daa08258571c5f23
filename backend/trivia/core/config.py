"""
Application configuration
Reads environment variables (and an optional .env file) via Pydantic Settings
"""
from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Trivia API"
    debug: bool = False

    # MongoDB Configuration
    # mongo_uri -> MONGO_URI, mongo_db -> MONGO_DB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "trivia"

    # Token signing. Must be supplied by the environment; never logged.
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = ""

    cors_origins: str = "http://localhost:3000"

    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    auth_rate_limit: str = "20/minute"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings (cached)"""
    return Settings()
