"""SQLite-backed file and usage storage.

Two tables:
- files: imported documents with their status and parsed payload
- model_usage: one request-counter row per model

Every operation opens its own connection so calls can run on worker
threads via asyncio.to_thread.
"""

import asyncio
import hashlib
import logging
import shutil
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

import orjson

from ..extraction.inputs import infer_mime_type
from ..types.files import FileStatus, FileTask
from ..types.usage import ModelUsageRecord

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
  id TEXT PRIMARY KEY,
  hash_sha256 TEXT NOT NULL UNIQUE,
  file_name TEXT NOT NULL,
  stored_path TEXT NOT NULL,
  size_bytes INTEGER NOT NULL,
  mime_type TEXT,
  status TEXT NOT NULL DEFAULT 'Unprocessed',
  parsed_details TEXT,
  created_at TEXT DEFAULT CURRENT_TIMESTAMP,
  processed_at TEXT,
  updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_files_status ON files (status);

CREATE TABLE IF NOT EXISTS model_usage (
  model TEXT PRIMARY KEY,
  day TEXT NOT NULL,
  minute_window_start INTEGER NOT NULL,
  requests_minute INTEGER NOT NULL DEFAULT 0,
  requests_day INTEGER NOT NULL DEFAULT 0,
  updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

FILE_COLUMNS = (
    "id, hash_sha256, file_name, stored_path, size_bytes, mime_type, status, "
    "parsed_details, created_at, processed_at, updated_at"
)
USAGE_COLUMNS = "model, day, minute_window_start, requests_minute, requests_day"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class SQLiteStore:
    """Status/payload store and usage-counter store on one SQLite database."""

    def __init__(self, db_path: Path, storage_dir: Optional[Path] = None):
        """Initialize the store and create tables if needed.

        Args:
            db_path: SQLite database file.
            storage_dir: Where imported documents are copied. Defaults to a
                "files" directory beside the database.
        """
        self._db_path = Path(db_path)
        self._storage_dir = storage_dir or self._db_path.parent / "files"
        self._initialize_db()

    @property
    def db_path(self) -> Path:
        """Location of the database file."""
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _initialize_db(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
        logger.debug(f"SQLite store ready at {self._db_path}")

    # --- Files ---

    def _row_to_file(self, row: sqlite3.Row) -> FileTask:
        details = row["parsed_details"]
        return FileTask(
            id=row["id"],
            hash_sha256=row["hash_sha256"],
            file_name=row["file_name"],
            stored_path=row["stored_path"],
            size_bytes=row["size_bytes"],
            mime_type=row["mime_type"],
            status=FileStatus(row["status"]),
            parsed_details=orjson.loads(details) if details else None,
            created_at=_parse_timestamp(row["created_at"]),
            processed_at=_parse_timestamp(row["processed_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    def add_file(self, source: Path) -> tuple[FileTask, bool]:
        """Import a document, copying it into the storage directory.

        Files are de-duplicated by content hash.

        Returns:
            Tuple of (file task, whether it was already imported).
        """
        data = Path(source).read_bytes()
        digest = hashlib.sha256(data).hexdigest()

        with self._connect() as conn:
            existing = conn.execute(
                f"SELECT {FILE_COLUMNS} FROM files WHERE hash_sha256 = ? LIMIT 1",
                (digest,),
            ).fetchone()
            if existing:
                return self._row_to_file(existing), True

            file_id = str(uuid.uuid4())
            self._storage_dir.mkdir(parents=True, exist_ok=True)
            stored_path = self._storage_dir / f"{file_id}{Path(source).suffix.lower()}"
            shutil.copyfile(source, stored_path)

            conn.execute(
                "INSERT INTO files (id, hash_sha256, file_name, stored_path, size_bytes, mime_type) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    file_id,
                    digest,
                    Path(source).name,
                    str(stored_path),
                    len(data),
                    infer_mime_type(Path(source).name),
                ),
            )
            row = conn.execute(
                f"SELECT {FILE_COLUMNS} FROM files WHERE id = ?", (file_id,)
            ).fetchone()

        logger.info(f"Imported {Path(source).name} as {file_id}")
        return self._row_to_file(row), False

    def get_file(self, file_id: str) -> Optional[FileTask]:
        """Look up one file by id."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {FILE_COLUMNS} FROM files WHERE id = ?", (file_id,)
            ).fetchone()
        return self._row_to_file(row) if row else None

    def list_files(self, status: Optional[FileStatus] = None) -> list[FileTask]:
        """List files, oldest first, optionally filtered by status."""
        query = f"SELECT {FILE_COLUMNS} FROM files"
        params: tuple[Any, ...] = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (status.value,)
        query += " ORDER BY created_at ASC, rowid ASC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_file(row) for row in rows]

    def _update_status_sync(self, file_id: str, status: FileStatus) -> None:
        processed_at = _utc_now() if status is FileStatus.PROCESSED else None
        with self._connect() as conn:
            conn.execute(
                "UPDATE files SET status = ?, processed_at = COALESCE(?, processed_at), "
                "updated_at = ? WHERE id = ?",
                (status.value, processed_at, _utc_now(), file_id),
            )

    def _update_parsed_details_sync(self, file_id: str, details: dict[str, Any]) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE files SET parsed_details = ?, updated_at = ? WHERE id = ?",
                (orjson.dumps(details).decode(), _utc_now(), file_id),
            )

    async def update_status(self, file_id: str, status: FileStatus) -> None:
        """Set a file's status. Processed also stamps processed_at."""
        await asyncio.to_thread(self._update_status_sync, file_id, status)

    async def update_parsed_details(self, file_id: str, details: dict[str, Any]) -> None:
        """Replace a file's parsed payload."""
        await asyncio.to_thread(self._update_parsed_details_sync, file_id, details)

    # --- Model usage ---

    @staticmethod
    def _row_to_usage(row: sqlite3.Row) -> ModelUsageRecord:
        return ModelUsageRecord(
            model=row["model"],
            day=row["day"],
            minute_window_start=row["minute_window_start"],
            requests_minute=row["requests_minute"],
            requests_day=row["requests_day"],
        )

    def _load_usage_row_sync(self, model: str) -> Optional[ModelUsageRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {USAGE_COLUMNS} FROM model_usage WHERE model = ?", (model,)
            ).fetchone()
        return self._row_to_usage(row) if row else None

    def _upsert_usage_row_sync(self, row: ModelUsageRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO model_usage ({USAGE_COLUMNS}) VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(model) DO UPDATE SET "
                "day = excluded.day, "
                "minute_window_start = excluded.minute_window_start, "
                "requests_minute = excluded.requests_minute, "
                "requests_day = excluded.requests_day, "
                "updated_at = CURRENT_TIMESTAMP",
                (
                    row.model,
                    row.day,
                    row.minute_window_start,
                    row.requests_minute,
                    row.requests_day,
                ),
            )

    def _insert_usage_row_if_missing_sync(self, row: ModelUsageRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO model_usage ({USAGE_COLUMNS}) VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(model) DO NOTHING",
                (
                    row.model,
                    row.day,
                    row.minute_window_start,
                    row.requests_minute,
                    row.requests_day,
                ),
            )

    def _list_usage_rows_sync(self) -> list[ModelUsageRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {USAGE_COLUMNS} FROM model_usage ORDER BY model"
            ).fetchall()
        return [self._row_to_usage(row) for row in rows]

    async def load_usage_row(self, model: str) -> Optional[ModelUsageRecord]:
        """Load the usage row for a model, or None if it does not exist."""
        return await asyncio.to_thread(self._load_usage_row_sync, model)

    async def upsert_usage_row(self, row: ModelUsageRecord) -> None:
        """Insert or overwrite a model's usage row."""
        await asyncio.to_thread(self._upsert_usage_row_sync, row)

    async def insert_usage_row_if_missing(self, row: ModelUsageRecord) -> None:
        """Insert a usage row unless one already exists for the model."""
        await asyncio.to_thread(self._insert_usage_row_if_missing_sync, row)

    async def list_usage_rows(self) -> list[ModelUsageRecord]:
        """List all usage rows ordered by model."""
        return await asyncio.to_thread(self._list_usage_rows_sync)
