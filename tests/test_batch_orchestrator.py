"""Tests for the batch orchestrator."""

import asyncio

import pytest

from conftest import (
    HANG,
    FakeCredentials,
    FakeFileSystem,
    InMemoryStatusStore,
    ScriptedBackend,
    StatusError,
    make_file,
)
from invox.core.errors import CredentialMissingError, EmptyBatchError
from invox.orchestration import BatchOrchestrator
from invox.types import FileStatus


class Harness:
    """Wires an orchestrator to in-memory collaborators."""

    def __init__(self, catalog, tracker, script, file_ids, api_key="test-key", timeout=1.0):
        self.files = [make_file(file_id, f"{file_id}.pdf") for file_id in file_ids]
        self.filesystem = FakeFileSystem({f.stored_path: b"%PDF" for f in self.files})
        self.store = InMemoryStatusStore()
        self.backend = ScriptedBackend(script)
        self.api_keys: list[str] = []
        self.messages: list[str] = []
        self.progress: list[tuple[int, int]] = []

        def backend_factory(key):
            self.api_keys.append(key)
            return self.backend

        self.orchestrator = BatchOrchestrator(
            catalog=catalog,
            usage_tracker=tracker,
            filesystem=self.filesystem,
            status_store=self.store,
            credentials=FakeCredentials(api_key),
            backend_factory=backend_factory,
            attempt_timeout_seconds=timeout,
        )

    async def run(self, files=None):
        return await self.orchestrator.run(
            self.files if files is None else files,
            self.messages.append,
            lambda done, total: self.progress.append((done, total)),
        )


class TestBatchOrchestrator:
    """Tests for BatchOrchestrator.run."""

    @pytest.mark.asyncio
    async def test_mixed_batch(self, catalog, tracker):
        """Success, fallback success, and a hard failure in one batch."""
        harness = Harness(
            catalog,
            tracker,
            {
                "model-a": [
                    '{"invoice_number": "1"}',
                    StatusError("Too many requests", 429),
                    ValueError("Unsupported document"),
                ],
                "model-b": ['{"invoice_number": "2"}'],
            },
            ["f1", "f2", "f3"],
        )

        result = await harness.run()

        assert result.processed_files == 2
        assert result.failed_files == 1
        assert result.total_files == 3
        assert result.completed_at is not None

        assert harness.progress == [(1, 3), (2, 3), (3, 3)]
        assert harness.api_keys == ["test-key"]
        assert harness.backend.models_called() == ["model-a", "model-a", "model-b", "model-a"]

        store = harness.store
        assert store.final_status("f1") is FileStatus.PROCESSED
        assert store.final_status("f2") is FileStatus.PROCESSED
        assert store.final_status("f3") is FileStatus.FAILED
        assert store.details["f1"] == {"invoice_number": "1"}
        assert store.details["f2"] == {"invoice_number": "2"}
        assert store.details["f3"] == {"error": "Unsupported document", "statusCode": None}

    @pytest.mark.asyncio
    async def test_rate_limited_and_timed_out_files(self, catalog, tracker):
        """Files that exhaust every model on 429s or timeouts are failed."""
        harness = Harness(
            catalog,
            tracker,
            {
                "model-a": ['{"invoice_number": "1"}', StatusError("quota", 429), HANG],
                "model-b": [StatusError("quota", 429), HANG],
                "model-c": [StatusError("quota", 429), HANG],
            },
            ["f1", "f2", "f3"],
            timeout=0.05,
        )

        result = await harness.run()

        assert result.processed_files == 1
        assert result.failed_files == 2
        assert harness.progress == [(1, 3), (2, 3), (3, 3)]
        assert harness.store.details["f2"] == {"error": "quota", "statusCode": 429}
        assert harness.store.details["f3"] == {
            "error": "Request to model-c timed out after 0.05 seconds",
            "statusCode": None,
        }

    @pytest.mark.asyncio
    async def test_all_files_marked_processing_before_any_call(self, catalog, tracker):
        harness = Harness(
            catalog,
            tracker,
            {"model-a": ['{"a": 1}', '{"a": 2}']},
            ["f1", "f2"],
        )

        await harness.run()

        assert harness.store.history[:2] == [
            ("f1", FileStatus.PROCESSING),
            ("f2", FileStatus.PROCESSING),
        ]
        assert harness.store.history[2:] == [
            ("f1", FileStatus.PROCESSED),
            ("f2", FileStatus.PROCESSED),
        ]

    @pytest.mark.asyncio
    async def test_status_messages(self, catalog, tracker):
        harness = Harness(catalog, tracker, {"model-a": ['{"a": 1}']}, ["f1"])

        await harness.run()

        assert harness.messages == [
            "Reading files from disk...",
            "Processing 1 files...",
            "Processing files: 1 processed, 0 remaining",
            "Processing completed successfully.",
        ]

    @pytest.mark.asyncio
    async def test_all_failed_message(self, catalog, tracker):
        harness = Harness(catalog, tracker, {"model-a": [ValueError("bad")]}, ["f1"])

        result = await harness.run()

        assert result.failed_files == 1
        assert harness.messages[-1] == "Processing failed: all files failed to process."

    @pytest.mark.asyncio
    async def test_raw_payload_is_flagged_for_review(self, catalog, tracker):
        harness = Harness(catalog, tracker, {"model-a": ["not json"]}, ["f1"])

        result = await harness.run()

        assert result.processed_files == 1
        assert harness.store.details["f1"] == {"_raw": "not json"}
        assert any("stored raw text for review" in m for m in harness.messages)

    @pytest.mark.asyncio
    async def test_rate_limited_exhaustion_stores_429(self, catalog, tracker):
        harness = Harness(
            catalog,
            tracker,
            {model: [StatusError("quota", 429)] for model in catalog.models},
            ["f1"],
        )

        await harness.run()

        assert harness.store.details["f1"] == {"error": "quota", "statusCode": 429}

    @pytest.mark.asyncio
    async def test_empty_batch(self, catalog, tracker):
        harness = Harness(catalog, tracker, {}, [])

        with pytest.raises(EmptyBatchError):
            await harness.run()

        assert harness.store.history == []
        assert harness.messages == []

    @pytest.mark.asyncio
    async def test_missing_credential(self, catalog, tracker):
        """No status is touched when the API key is missing."""
        harness = Harness(catalog, tracker, {}, ["f1"], api_key=None)

        with pytest.raises(CredentialMissingError):
            await harness.run()

        assert harness.store.history == []
        assert harness.api_keys == []

    @pytest.mark.asyncio
    async def test_read_failure_marks_batch_failed(self, catalog, tracker):
        harness = Harness(catalog, tracker, {}, ["f1", "f2"])
        del harness.filesystem.files[harness.files[1].stored_path]

        with pytest.raises(FileNotFoundError):
            await harness.run()

        assert harness.store.final_status("f1") is FileStatus.FAILED
        assert harness.store.final_status("f2") is FileStatus.FAILED
        assert harness.backend.calls == []

    @pytest.mark.asyncio
    async def test_crash_mid_batch_fails_only_unresolved_files(self, catalog, tracker):
        harness = Harness(
            catalog,
            tracker,
            {"model-a": ['{"a": 1}', '{"a": 2}', '{"a": 3}']},
            ["f1", "f2", "f3"],
        )
        harness.store.fail_details_for = "f2"

        with pytest.raises(OSError):
            await harness.run()

        processing, processed, failed = (
            FileStatus.PROCESSING,
            FileStatus.PROCESSED,
            FileStatus.FAILED,
        )
        assert harness.store.statuses("f1") == [processing, processed]
        assert harness.store.statuses("f2") == [processing, failed]
        assert harness.store.statuses("f3") == [processing, failed]
        assert harness.progress == [(1, 3)]

    @pytest.mark.asyncio
    async def test_failed_payload_write_leaves_single_terminal_status(self, catalog, tracker):
        """A file whose payload cannot be stored is never marked Processed."""
        harness = Harness(catalog, tracker, {"model-a": ['{"a": 1}']}, ["f1", "f2"])
        harness.store.fail_details_for = "f1"

        with pytest.raises(OSError):
            await harness.run()

        assert harness.store.statuses("f1") == [FileStatus.PROCESSING, FileStatus.FAILED]
        assert harness.store.statuses("f2") == [FileStatus.PROCESSING, FileStatus.FAILED]
        assert harness.progress == []

    @pytest.mark.asyncio
    async def test_failed_processing_mark_leaves_later_files_unprocessed(self, catalog, tracker):
        """Only files already marked Processing move to Failed."""
        harness = Harness(catalog, tracker, {}, ["f1", "f2", "f3"])
        harness.store.fail_status_for = ("f2", FileStatus.PROCESSING)

        with pytest.raises(OSError):
            await harness.run()

        assert harness.store.statuses("f1") == [FileStatus.PROCESSING, FileStatus.FAILED]
        assert harness.store.statuses("f2") == []
        assert harness.store.statuses("f3") == []
        assert harness.backend.calls == []

    @pytest.mark.asyncio
    async def test_cancelled_backend_call_fails_the_file(self, catalog, tracker):
        """A backend call that ends cancelled is a file failure, not a batch abort."""
        harness = Harness(
            catalog,
            tracker,
            {"model-a": [asyncio.CancelledError(), '{"a": 2}']},
            ["f1", "f2"],
        )

        result = await harness.run()

        assert result.processed_files == 1
        assert result.failed_files == 1
        assert harness.store.statuses("f1") == [FileStatus.PROCESSING, FileStatus.FAILED]
        assert harness.store.statuses("f2") == [FileStatus.PROCESSING, FileStatus.PROCESSED]
        assert harness.store.details["f1"] == {
            "error": "Request to model-a was cancelled",
            "statusCode": None,
        }
        assert harness.backend.models_called() == ["model-a", "model-a"]

    def test_run_sync(self, catalog, tracker):
        harness = Harness(catalog, tracker, {"model-a": ['{"a": 1}']}, ["f1"])

        result = harness.orchestrator.run_sync(harness.files)

        assert result.processed_files == 1
