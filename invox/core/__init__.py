"""Core infrastructure for Invox."""

from .config import InvoxConfig, get_config, get_data_dir
from .credentials import CredentialProvider, sanitize_key
from .errors import (
    AttemptTimeoutError,
    CatalogError,
    CredentialMissingError,
    EmptyBatchError,
    InvoxError,
    RateLimitExceededDaily,
    classify_error,
)
from .preferences import PreferenceStore

__all__ = [
    # Config
    "InvoxConfig",
    "get_config",
    "get_data_dir",
    # Credentials
    "CredentialProvider",
    "PreferenceStore",
    "sanitize_key",
    # Errors
    "AttemptTimeoutError",
    "CatalogError",
    "CredentialMissingError",
    "EmptyBatchError",
    "InvoxError",
    "RateLimitExceededDaily",
    "classify_error",
]
