import os
import logging
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# .env next to this file, so the app can be started from any directory
load_dotenv(Path(__file__).with_name(".env"))

logger = logging.getLogger(__name__)


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Server
    PORT: int = int(os.getenv("PORT", "8000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOWED_ORIGINS: list = _split_origins(
        os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173")
    )

    # Search / pagination
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
    MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))
    SEARCH_CACHE_CONTROL: str = os.getenv(
        "SEARCH_CACHE_CONTROL", "public, s-maxage=300, stale-while-revalidate=600"
    )
    ADMISSION_CYCLES_CACHE_CONTROL: str = os.getenv(
        "ADMISSION_CYCLES_CACHE_CONTROL", "public, s-maxage=3600, stale-while-revalidate=86400"
    )

    # Saved schools
    SAVED_SCHOOLS_LIMIT: int = int(os.getenv("SAVED_SCHOOLS_LIMIT", "20"))

    # Auth
    SESSION_TTL_HOURS: int = int(os.getenv("SESSION_TTL_HOURS", "168"))

    @classmethod
    def database_url(cls) -> str:
        """Configured URL, or a local SQLite file when DATABASE_URL is unset."""
        if cls.DATABASE_URL and cls.DATABASE_URL.strip():
            return cls.DATABASE_URL
        return f"sqlite:///{Path(__file__).with_name('app.db')}"

    @classmethod
    def validate(cls):
        """Validate required environment variables."""
        if not cls.DATABASE_URL:
            logger.warning("DATABASE_URL not set. Falling back to local SQLite database.")
        if cls.DEFAULT_PAGE_SIZE > cls.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE")

settings = Settings()
