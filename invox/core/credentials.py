"""API key resolution."""

from typing import Optional

from .config import InvoxConfig
from .preferences import PreferenceStore


def sanitize_key(value: Optional[str]) -> Optional[str]:
    """Strip a key and treat blank values as missing."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class CredentialProvider:
    """Resolves the Gemini API key.

    A key stored in preferences wins over the environment.
    """

    def __init__(self, config: InvoxConfig, preferences: Optional[PreferenceStore] = None):
        self._config = config
        self._preferences = preferences

    def get_api_key(self) -> Optional[str]:
        """Return the API key, or None when no usable key is configured."""
        if self._preferences is not None:
            stored = sanitize_key(self._preferences.get_api_key())
            if stored:
                return stored
        return sanitize_key(self._config.api_key)
