"""Persistent preference storage.

Stores user preferences such as the Gemini API key and the model catalog
URL in a JSON file under the platform config directory.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import platformdirs

from .config import APP_AUTHOR, APP_NAME

logger = logging.getLogger(__name__)

PREFERENCES_FILE_NAME = "account.preferences.json"
GEMINI_KEY_PREF_KEY = "gemini_api_key"
CATALOG_URL_PREF_KEY = "gemini_model_catalog_url"


def get_preferences_path() -> Path:
    """Get the path to the preferences file."""
    return Path(platformdirs.user_config_dir(APP_NAME, APP_AUTHOR)) / PREFERENCES_FILE_NAME


class PreferenceStore:
    """Persistent preference storage using a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize the preference store.

        Args:
            path: Path to preferences file. Uses default if None.
        """
        self._path = path or get_preferences_path()
        self._data: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path:
        """Location of the preferences file."""
        return self._path

    def _load(self) -> None:
        """Load preferences from disk."""
        try:
            if self._path.exists():
                with open(self._path, "r") as f:
                    self._data = json.load(f)
                logger.debug(f"Loaded preferences from {self._path}")
        except Exception as e:
            logger.warning(f"Failed to load preferences: {e}")
            self._data = {}

    def _save(self) -> None:
        """Save preferences to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w") as f:
                json.dump(self._data, f, indent=2)
            logger.debug(f"Saved preferences to {self._path}")
        except Exception as e:
            logger.warning(f"Failed to save preferences: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a preference value."""
        value = self._data.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """Set a preference value and persist it."""
        self._data[key] = value
        self._save()

    def delete(self, key: str) -> None:
        """Delete a preference value."""
        if key in self._data:
            del self._data[key]
            self._save()

    def get_api_key(self) -> Optional[str]:
        """Get the stored Gemini API key."""
        return self.get(GEMINI_KEY_PREF_KEY)

    def set_api_key(self, value: str) -> None:
        """Store the Gemini API key."""
        self.set(GEMINI_KEY_PREF_KEY, value.strip())

    def clear_api_key(self) -> None:
        """Forget the stored Gemini API key."""
        self.delete(GEMINI_KEY_PREF_KEY)

    def get_catalog_url(self) -> Optional[str]:
        """Get the model catalog URL."""
        return self.get(CATALOG_URL_PREF_KEY)

    def set_catalog_url(self, url: str) -> None:
        """Store the model catalog URL."""
        self.set(CATALOG_URL_PREF_KEY, url.strip())
