"""
Application Settings and Configuration

Centralizes all environment variable loading and configuration.
Uses Pydantic Settings for validation.
"""

import os
import urllib.parse
from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv


def load_env_file() -> Optional[Path]:
    """Load .env from the working directory or the project root, if present."""
    base_path = Path(__file__).parent.parent.parent
    env_paths = [
        Path.cwd() / ".env",
        base_path / ".env",
    ]

    for path in env_paths:
        if path.exists():
            load_dotenv(dotenv_path=path, override=False)
            return path
    return None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration (read-only user). DATABASE_URL wins when set.
    DATABASE_URL: str = ""
    HOST: str = ""
    PORT: str = "5432"
    DATABASE: str = ""
    USER: str = ""
    PASSWORD: str = ""
    SSL_MODE: str = "prefer"
    QUERY_TIMEOUT_SECONDS: int = 60

    # Journey Configuration
    # Default extra hours for same-facility journeys when a request gives none
    EXTRA_JOURNEY_TIME_LIMIT: Optional[float] = None
    # Upper bound on geofencing rows fed into one calculation
    MAX_GEOFENCING_ROWS: int = 500000

    # Logging Configuration
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    LOG_DIR: str = "logs"
    LOG_RETENTION_DAYS: int = 30
    LOG_TO_CONSOLE: bool = True
    LOG_TO_FILE: bool = False

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore"  # Ignore extra fields from environment
    )

    def model_post_init(self, __context):
        """Handle USER vs DBUSER fallback and normalize the log level."""
        if not self.USER:
            self.USER = os.environ.get("DBUSER", "")
        if self.LOG_LEVEL:
            self.LOG_LEVEL = self.LOG_LEVEL.upper()

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL; DATABASE_URL if set, otherwise built from HOST/USER/..."""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        self.validate_database_config()
        encoded_password = urllib.parse.quote_plus(self.PASSWORD)
        database_url = (
            f"postgresql+psycopg2://{self.USER}:{encoded_password}"
            f"@{self.HOST}:{self.PORT}/{self.DATABASE}"
        )
        if self.SSL_MODE != "disable":
            database_url += f"?sslmode={self.SSL_MODE}"
        return database_url

    def validate_database_config(self):
        """Validate that all required database config is present."""
        if self.DATABASE_URL:
            return

        missing = []
        if not self.HOST:
            missing.append("HOST")
        if not self.DATABASE:
            missing.append("DATABASE")
        if not self.USER:
            missing.append("USER/DBUSER")
        if not self.PASSWORD:
            missing.append("PASSWORD")

        if missing:
            raise ValueError(
                f"Missing required database environment variables: {', '.join(missing)}. "
                "Set DATABASE_URL or the individual variables in your .env file or environment."
            )


@lru_cache
def get_settings() -> Settings:
    """Settings for the current process (loads .env on first call)."""
    load_env_file()
    return Settings()
