"""Configuration management for Invox.

Loads configuration from environment variables with .env file support.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import platformdirs
from dotenv import load_dotenv

# Load .env file from project root
_env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(_env_path)

APP_NAME = "invox"
APP_AUTHOR = "invox"

DEFAULT_ATTEMPT_TIMEOUT_SECONDS = 120.0
DEFAULT_USAGE_TIMEZONE = "America/Los_Angeles"
CATALOG_FILE_NAME = "gemini-models.json"
DATABASE_FILE_NAME = "invox.db"


def get_data_dir() -> Path:
    """Get the platform-specific data directory."""
    return Path(platformdirs.user_data_dir(APP_NAME, APP_AUTHOR))


@dataclass
class InvoxConfig:
    """Runtime configuration."""

    api_key: Optional[str] = None
    db_path: Optional[Path] = None
    catalog_path: Optional[Path] = None
    catalog_url: Optional[str] = None
    attempt_timeout_seconds: float = DEFAULT_ATTEMPT_TIMEOUT_SECONDS
    usage_timezone: str = DEFAULT_USAGE_TIMEZONE
    debug: bool = False

    def __post_init__(self):
        """Resolve default storage locations."""
        if self.db_path is None:
            self.db_path = get_data_dir() / DATABASE_FILE_NAME
        if self.catalog_path is None:
            self.catalog_path = get_data_dir() / CATALOG_FILE_NAME

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of validation error messages, empty if valid.
        """
        errors = []
        if self.attempt_timeout_seconds <= 0:
            errors.append("INVOX_ATTEMPT_TIMEOUT must be a positive number of seconds")
        try:
            ZoneInfo(self.usage_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"INVOX_USAGE_TIMEZONE is not a known timezone: {self.usage_timezone}")
        return errors


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value).expanduser() if value else None


def get_config() -> InvoxConfig:
    """Load configuration from environment variables.

    Returns:
        InvoxConfig instance populated from environment.
    """
    timeout_env = os.environ.get("INVOX_ATTEMPT_TIMEOUT", "")
    try:
        timeout = float(timeout_env) if timeout_env else DEFAULT_ATTEMPT_TIMEOUT_SECONDS
    except ValueError:
        timeout = -1.0  # reported by validate()

    return InvoxConfig(
        api_key=os.environ.get("GEMINI_API_KEY") or None,
        db_path=_optional_path(os.environ.get("INVOX_DB_PATH")),
        catalog_path=_optional_path(os.environ.get("INVOX_CATALOG_PATH")),
        catalog_url=os.environ.get("INVOX_CATALOG_URL") or None,
        attempt_timeout_seconds=timeout,
        usage_timezone=os.environ.get("INVOX_USAGE_TIMEZONE", DEFAULT_USAGE_TIMEZONE),
        debug=os.environ.get("INVOX_DEBUG", "").lower() == "true",
    )
