'''
Holds all the configurations
'''
from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from .logger import log

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    # Application Metadata
    APP_NAME: str = "Class Admin Backend"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Back-office API for managing classes, students, tuition, grades and documents."
    TEST_MODE: bool = False
    PORT: int = 8000

    # Database URL
    DATABASE_URL: str
    # Creates the schema on startup. Meant for local development and tests.
    AUTO_CREATE_TABLES: bool = False

    # JWT Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE_MB: int = 50

    BACKEND_CORS_ORIGINS: list[str] = []

    @property
    def database_url(self) -> str:
        """
        Normalizes plain postgres URLs to the asyncpg driver.
        """
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url

    @property
    def upload_path(self) -> Path:
        return Path(self.UPLOAD_DIR).resolve()

    @property
    def max_upload_size_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    class Config:
        env_file = ".env" # automatically loads the .env
        extra = "ignore"


def load_settings() -> Settings:
    """
    Builds the settings object, failing loudly when a required variable is absent.
    """
    try:
        return Settings()
    except ValidationError as e:
        missing = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        log.critical(f"FATAL: Missing or invalid configuration values: {', '.join(missing)}. "
                     f"Set them in the environment or in a .env file.")
        raise RuntimeError(f"Missing or invalid configuration: {', '.join(missing)}") from e

# Create a single, importable instance of the settings
settings = load_settings()
