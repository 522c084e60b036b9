"""Collaborator contracts used by the orchestration layer."""

from typing import Any, Optional, Protocol

from ..extraction.inputs import ExtractionRequest
from ..types.files import FileStatus
from ..types.usage import ModelUsageRecord


class FileSystem(Protocol):
    """Reads stored document bytes."""

    async def read_binary(self, path: str) -> bytes: ...


class CredentialSource(Protocol):
    """Supplies the API key, or None when absent."""

    def get_api_key(self) -> Optional[str]: ...


class StatusStore(Protocol):
    """Single-writer store for file status and parsed payloads."""

    async def update_status(self, file_id: str, status: FileStatus) -> None: ...

    async def update_parsed_details(self, file_id: str, details: dict[str, Any]) -> None: ...


class UsageStore(Protocol):
    """One usage row per model."""

    async def load_usage_row(self, model: str) -> Optional[ModelUsageRecord]: ...

    async def upsert_usage_row(self, row: ModelUsageRecord) -> None: ...

    async def insert_usage_row_if_missing(self, row: ModelUsageRecord) -> None: ...

    async def list_usage_rows(self) -> list[ModelUsageRecord]: ...


class ExtractionBackend(Protocol):
    """The AI extraction endpoint: one request in, response text out."""

    async def generate(self, request: ExtractionRequest, model: str) -> str: ...
