"""Settings for linkgate, read from the environment and an optional .env file."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import Field, ValidationInfo, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_INTERSTITIAL_SECRET = "change_this_to_a_secure_random_string_in_production"


class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Environment variables win over .env entries, which win over the defaults below."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # Application
    APP_NAME: str = "linkgate"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Short link redirector with password and interstitial gates"

    # API Configuration
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # CORS settings
    CORS_ORIGINS: Union[List[str], str] = ["*"]

    # PostgreSQL settings
    POSTGRES_SERVER: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="linkgate")
    # Full override, e.g. "sqlite+aiosqlite:///./linkgate.db"
    DATABASE_URL: Optional[str] = None

    # PostgreSQL pool settings
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_POOL_MAX_OVERFLOW: int = 10
    POSTGRES_POOL_TIMEOUT: int = 30
    POSTGRES_POOL_RECYCLE: int = 300
    DB_ECHO: bool = False
    DB_CREATE_TABLES: bool = False  # Create missing tables at startup

    # Interstitial tickets
    INTERSTITIAL_SECRET: str = DEFAULT_INTERSTITIAL_SECRET

    # Object store (S3 compatible, e.g. Cloudflare R2)
    OBJECT_STORE_BUCKET: Optional[str] = None  # None disables object-store backed assets
    OBJECT_STORE_ENDPOINT_URL: Optional[str] = None
    OBJECT_STORE_ACCESS_KEY_ID: Optional[str] = None
    OBJECT_STORE_SECRET_ACCESS_KEY: Optional[str] = None
    OBJECT_STORE_REGION: str = "auto"

    # Public template assets
    ASSET_CACHE_MAX_AGE: int = 86400

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILENAME: str = "app.log"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"
    LOG_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message}"
    LOG_JSON: bool = True
    REQUEST_LOGGING_ENABLED: bool = True  # Enable request logging middleware
    VISIT_LOGGING_ENABLED: bool = True  # Write the visit access log files

    # Validators
    @field_validator("DATABASE_URL", "OBJECT_STORE_BUCKET", "OBJECT_STORE_ENDPOINT_URL", mode="before")
    def empty_string_to_none(cls, v: Any) -> Optional[str]:
        """Treat empty environment values as unset."""
        if v == "":
            return None
        return v

    @field_validator("INTERSTITIAL_SECRET")
    def validate_interstitial_secret(cls, v: str, info: ValidationInfo) -> str:
        env_value = info.data.get("ENVIRONMENT", EnvironmentType.DEVELOPMENT)

        if v == DEFAULT_INTERSTITIAL_SECRET and (env_value == EnvironmentType.PRODUCTION or str(env_value) == "production"):
            # Tickets signed with the default secret can be forged by anyone
            logger.warning("Using default INTERSTITIAL_SECRET in production environment! This is a security risk.")
        return v

    @field_validator("CORS_ORIGINS")
    def validate_list_or_string(cls, v: Union[List[str], str]) -> List[str]:
        """Convert comma-separated string to list if needed."""
        if isinstance(v, str):
            if not v.strip():
                return []
            if v == "*":
                return ["*"]
            return [item.strip() for item in v.split(",")]
        return v

    # Computed fields
    @computed_field
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct the SQLAlchemy database URI from settings or use override."""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @computed_field
    def OBJECT_STORE_ENABLED(self) -> bool:
        return bool(self.OBJECT_STORE_BUCKET)


# Create a singleton instance of the settings
settings = Settings()
