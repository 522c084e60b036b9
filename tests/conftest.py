"""Shared fakes for the orchestration tests."""

import asyncio
from typing import Any, Optional, Union

import pytest

from invox.catalog import ModelCatalog
from invox.extraction import ExtractionRequest
from invox.orchestration import UsageTracker
from invox.types import FileStatus, FileTask, ModelUsageRecord

# 2025-01-15 12:00 in America/Los_Angeles
START_MS = 1_736_971_200_000


class FakeClock:
    """Controllable clock. Sleeping advances time instantly."""

    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms
        self.sleeps: list[float] = []

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


class InMemoryUsageStore:
    """Usage store backed by a dict, with switchable failures."""

    def __init__(self):
        self.rows: dict[str, ModelUsageRecord] = {}
        self.calls = 0
        self.fail_loads = False
        self.fail_writes = False

    async def load_usage_row(self, model: str) -> Optional[ModelUsageRecord]:
        self.calls += 1
        if self.fail_loads:
            raise OSError("usage store unavailable")
        row = self.rows.get(model)
        return row.model_copy() if row else None

    async def upsert_usage_row(self, row: ModelUsageRecord) -> None:
        self.calls += 1
        if self.fail_writes:
            raise OSError("usage store unavailable")
        self.rows[row.model] = row.model_copy()

    async def insert_usage_row_if_missing(self, row: ModelUsageRecord) -> None:
        self.calls += 1
        if self.fail_writes:
            raise OSError("usage store unavailable")
        self.rows.setdefault(row.model, row.model_copy())

    async def list_usage_rows(self) -> list[ModelUsageRecord]:
        return [self.rows[model].model_copy() for model in sorted(self.rows)]


class InMemoryStatusStore:
    """Records every status and payload write."""

    def __init__(self):
        self.history: list[tuple[str, FileStatus]] = []
        self.details: dict[str, dict[str, Any]] = {}
        self.fail_details_for: Optional[str] = None
        self.fail_status_for: Optional[tuple[str, FileStatus]] = None

    async def update_status(self, file_id: str, status: FileStatus) -> None:
        if (file_id, status) == self.fail_status_for:
            raise OSError("database is locked")
        self.history.append((file_id, status))

    async def update_parsed_details(self, file_id: str, details: dict[str, Any]) -> None:
        if file_id == self.fail_details_for:
            raise OSError("disk full")
        self.details[file_id] = details

    def statuses(self, file_id: str) -> list[FileStatus]:
        return [status for fid, status in self.history if fid == file_id]

    def final_status(self, file_id: str) -> Optional[FileStatus]:
        statuses = self.statuses(file_id)
        return statuses[-1] if statuses else None


class FakeFileSystem:
    """Serves document bytes from a dict."""

    def __init__(self, files: Optional[dict[str, bytes]] = None):
        self.files = files or {}

    async def read_binary(self, path: str) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]


class FakeCredentials:
    def __init__(self, api_key: Optional[str] = "test-key"):
        self.api_key = api_key

    def get_api_key(self) -> Optional[str]:
        return self.api_key


HANG = object()

Scripted = Union[str, BaseException, object]


class ScriptedBackend:
    """Answers each model from a queue of responses.

    A response is returned text, an exception to raise, or HANG to never
    complete.
    """

    def __init__(self, script: Optional[dict[str, list[Scripted]]] = None):
        self.script = {model: list(items) for model, items in (script or {}).items()}
        self.calls: list[tuple[str, Optional[str]]] = []

    async def generate(self, request: ExtractionRequest, model: str) -> str:
        self.calls.append((model, request.display_name))
        queue = self.script.get(model)
        if not queue:
            raise AssertionError(f"Unexpected call to {model}")
        response = queue.pop(0)
        if response is HANG:
            await asyncio.Event().wait()
        if isinstance(response, BaseException):
            raise response
        return response

    def models_called(self) -> list[str]:
        return [model for model, _ in self.calls]


class StatusError(Exception):
    """SDK-style error carrying an HTTP status code."""

    def __init__(self, message: str, code: int):
        super().__init__(message)
        self.code = code


def make_file(file_id: str, name: str = "invoice.pdf") -> FileTask:
    return FileTask(id=file_id, file_name=name, stored_path=f"/store/{file_id}.pdf")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def usage_store():
    return InMemoryUsageStore()


@pytest.fixture
def tracker(usage_store, clock):
    return UsageTracker(usage_store, clock=clock, sleep=clock.sleep)


@pytest.fixture
def catalog():
    """Three unmetered models tried in order a, b, c."""
    models = ["model-a", "model-b", "model-c"]
    return ModelCatalog(
        default_model="model-a",
        models=list(models),
        fallback_order=list(models),
        rate_limits={},
    )
