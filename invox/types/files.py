"""File task models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class FileStatus(str, Enum):
    """Processing status of an imported file."""

    UNPROCESSED = "Unprocessed"
    PROCESSING = "Processing"
    PROCESSED = "Processed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no automatic transition leaves this status."""
        return self in (FileStatus.PROCESSED, FileStatus.FAILED)


class FileTask(BaseModel):
    """An imported invoice document awaiting or past extraction."""

    id: str = Field(description="Opaque file identifier")
    file_name: str = Field(description="Display name")
    stored_path: str = Field(description="Path to the binary content")
    mime_type: Optional[str] = Field(default=None)
    size_bytes: int = Field(default=0)
    hash_sha256: Optional[str] = Field(default=None)
    status: FileStatus = Field(default=FileStatus.UNPROCESSED)
    parsed_details: Optional[dict[str, Any]] = Field(default=None)
    created_at: Optional[datetime] = Field(default=None)
    processed_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    model_config = {"populate_by_name": True, "use_enum_values": False}

    @property
    def short_id(self) -> str:
        """First eight characters of the id."""
        return self.id[:8]
