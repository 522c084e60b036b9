"""Storage collaborators: local files and the SQLite database."""

from .base import (
    CredentialSource,
    ExtractionBackend,
    FileSystem,
    StatusStore,
    UsageStore,
)
from .filesystem import LocalFileSystem
from .sqlite_store import SQLiteStore

__all__ = [
    "CredentialSource",
    "ExtractionBackend",
    "FileSystem",
    "StatusStore",
    "UsageStore",
    "LocalFileSystem",
    "SQLiteStore",
]
