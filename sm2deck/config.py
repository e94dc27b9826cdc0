"""
Centralized configuration management for sm2deck.
"""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import MAX_GRADE, MIN_GRADE


def get_default_db_path() -> Path:
    """Returns the default path for the database file."""
    return Path.home() / ".sm2deck" / "cards.db"


class Settings(BaseSettings):
    """
    Defines application settings, loaded from SM2DECK_* environment variables
    or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SM2DECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Overridden by SM2DECK_DB_PATH; the CLI also honours --db and SM2DECK_DB.
    db_path: Path = Field(default_factory=get_default_db_path)

    # Highest grade the review prompt offers. The scheduler itself always
    # accepts the full 0-10 scale.
    max_grade: int = Field(default=5, ge=MIN_GRADE, le=MAX_GRADE)

    # Default number of due cards loaded into one review session.
    review_limit: int = Field(default=20, ge=1)

    # When True, disables safety checks that prevent data loss during tests.
    # Should NEVER be enabled in production.
    testing_mode: bool = False


settings = Settings()
