"""
Application Configuration
Add constants, secrets, env variables here
"""

from functools import lru_cache
import os
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env file into os.environ so os.getenv() works correctly
# This must happen before Settings class is instantiated
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


class Settings(BaseSettings):
    # Metadata database
    SQLALCHEMY_DATABASE_URI: str = "sqlite://"

    LOG_LEVEL: str = "INFO"

    # Storage drivers, registered in this order. The first one is active
    # unless DEFAULT_STORAGE_DRIVER names another.
    STORAGE_DRIVERS: list[str] = ["filesystem"]
    DEFAULT_STORAGE_DRIVER: str | None = None

    # Local filesystem driver
    FILESYSTEM_ROOT: str = "storage/files"
    FILESYSTEM_PUBLIC_PREFIX: str = "/files"

    # S3 driver
    S3_BUCKET_URI: str | None = None
    S3_PUBLIC_PREFIX: str | None = None
    S3_PRESIGN_EXPIRY: int = 3600

    # Options-map entry that marks an operation as targeting a derived variant
    MODIFICATION_KEY: str = "filters"

    # Remote fetch
    FETCH_TIMEOUT: float = 30.0

    # Upload validation, disabled when unset
    MAX_ARTIFACT_SIZE_MB: int | None = None
    ALLOWED_MIME_TYPES: list[str] | None = None

    # Read environment variables from .env file, if it exists
    # extra='ignore' prevents validation errors from extra env vars
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class InMemoryDbSettings(Settings):
    """Settings profile used by the test suite"""
    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///:memory:"


# Export settings
@lru_cache
def get_settings() -> Settings:
    """
    Get settings instance, cached for performance
    """
    if os.getenv("SETTINGS_MODE") == "test":
        return InMemoryDbSettings()
    return Settings()


if __name__ == "__main__":
    # To use in other modules
    # from clipper.core.config import get_settings
    print(get_settings().model_dump())
