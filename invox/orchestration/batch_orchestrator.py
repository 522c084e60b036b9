"""Batch extraction orchestrator.

Drives a list of files through the model sequencer one at a time,
persisting each status transition as it happens:

    Unprocessed -> Processing -> Processed | Failed

Every file is marked Processing before any network call, so a crash
leaves an observable trail of files to re-submit.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from ..catalog.model_catalog import ModelCatalog
from ..core.errors import CredentialMissingError, EmptyBatchError
from ..extraction.inputs import ExtractionInput, create_file_label, dedupe_label, infer_mime_type
from ..storage.base import CredentialSource, ExtractionBackend, FileSystem, StatusStore
from ..types.files import FileStatus, FileTask
from ..types.outcomes import BatchResult, ExtractionFailure, SequenceResult
from .invoker import DEFAULT_ATTEMPT_TIMEOUT, ExtractionInvoker
from .model_sequencer import ModelSequencer
from .usage_tracker import UsageTracker

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
ProgressCallback = Callable[[int, int], None]
BackendFactory = Callable[[str], ExtractionBackend]


def default_backend_factory(api_key: str) -> ExtractionBackend:
    """Gemini backend for an API key."""
    from ..clients.gemini_client import GeminiInvoiceClient

    return GeminiInvoiceClient(api_key)


class BatchOrchestrator:
    """Runs extraction for a batch of files, strictly in input order."""

    def __init__(
        self,
        catalog: ModelCatalog,
        usage_tracker: UsageTracker,
        filesystem: FileSystem,
        status_store: StatusStore,
        credentials: CredentialSource,
        backend_factory: Optional[BackendFactory] = None,
        attempt_timeout_seconds: float = DEFAULT_ATTEMPT_TIMEOUT,
    ):
        """Initialize the orchestrator.

        Args:
            catalog: Models, fallback order and rate limits.
            usage_tracker: Per-model admission control.
            filesystem: Reads stored document bytes.
            status_store: Receives status and payload updates.
            credentials: Supplies the API key.
            backend_factory: Builds the extraction backend from the API key.
            attempt_timeout_seconds: Deadline for each model attempt.
        """
        self._catalog = catalog
        self._usage = usage_tracker
        self._filesystem = filesystem
        self._store = status_store
        self._credentials = credentials
        self._backend_factory = backend_factory or default_backend_factory
        self._timeout = attempt_timeout_seconds

    def _build_sequencer(self, api_key: str) -> ModelSequencer:
        invoker = ExtractionInvoker(self._backend_factory(api_key), self._timeout)
        return ModelSequencer(self._catalog, self._usage, invoker)

    async def _prepare_inputs(self, files: list[FileTask]) -> list[ExtractionInput]:
        """Read every file and build extraction inputs in input order."""
        seen: dict[str, int] = {}
        inputs = []
        for index, file in enumerate(files):
            data = await self._filesystem.read_binary(file.stored_path)
            file_name = file.file_name or f"file-{index + 1}"
            inputs.append(
                ExtractionInput(
                    file_id=file.id,
                    label=dedupe_label(create_file_label(file_name, file.id), seen),
                    data=data,
                    mime_type=infer_mime_type(file_name, file.mime_type),
                )
            )
        return inputs

    async def _persist(self, file: FileTask, sequence: SequenceResult) -> None:
        """Write a file's payload, then its terminal status.

        The status is written last so a failed payload write leaves the file
        unresolved rather than terminal.
        """
        outcome = sequence.outcome
        if isinstance(outcome, ExtractionFailure):
            await self._store.update_parsed_details(file.id, outcome.to_payload())
            await self._store.update_status(file.id, FileStatus.FAILED)
        else:
            await self._store.update_parsed_details(file.id, outcome.payload)
            await self._store.update_status(file.id, FileStatus.PROCESSED)

    async def _mark_failed(self, files: list[FileTask]) -> None:
        for file in files:
            try:
                await self._store.update_status(file.id, FileStatus.FAILED)
            except Exception as e:
                logger.error(f"Could not mark {file.id} as failed: {e}")

    async def run(
        self,
        files: list[FileTask],
        on_status_update: Optional[StatusCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """Process a batch of files.

        Per-file failures are recorded and counted, never raised. Systemic
        failures (missing credential, empty input, I/O errors) propagate.
        Files already marked Processing but not yet resolved are marked
        Failed first; files never marked Processing stay untouched.

        Args:
            files: Files to process, in the order they should complete.
            on_status_update: Receives human-readable progress messages.
            on_progress: Receives (completed, total) after each file.

        Returns:
            BatchResult with processed and failed counts.

        Raises:
            EmptyBatchError: If no files were given.
            CredentialMissingError: If no API key is configured.
        """

        def emit(message: str) -> None:
            if on_status_update:
                on_status_update(message)

        logger.debug(f"Starting file processing for {len(files)} files")
        if not files:
            raise EmptyBatchError()

        api_key = self._credentials.get_api_key()
        if not api_key:
            logger.error("Gemini API key missing")
            raise CredentialMissingError()

        sequencer = self._build_sequencer(api_key)
        result = BatchResult()
        total = len(files)
        resolved = 0
        # Files before this index are marked Processing
        started = 0

        emit("Reading files from disk...")

        try:
            for file in files:
                await self._store.update_status(file.id, FileStatus.PROCESSING)
                started += 1

            inputs = await self._prepare_inputs(files)
            emit(f"Processing {len(inputs)} files...")

            for file, item in zip(files, inputs):
                sequence = await sequencer.run(item)
                await self._persist(file, sequence)
                resolved += 1

                if sequence.success:
                    result.processed_files += 1
                    if sequence.outcome.is_raw:
                        emit(f"{item.label}: response was not valid JSON, stored raw text for review")
                else:
                    result.failed_files += 1
                    logger.warning(
                        f"File processing failed: {item.label}: {sequence.outcome.message}"
                    )

                if on_progress:
                    on_progress(resolved, total)
                emit(f"Processing files: {resolved} processed, {total - resolved} remaining")

        except Exception:
            logger.exception("File processing failed")
            await self._mark_failed(files[resolved:started])
            raise

        result.completed_at = datetime.now()
        logger.debug(
            f"Batch processing completed: {result.processed_files} processed, "
            f"{result.failed_files} failed"
        )

        if result.failed_files == 0:
            emit("Processing completed successfully.")
        elif result.processed_files == 0:
            emit("Processing failed: all files failed to process.")
        else:
            emit(f"Processing completed with {result.failed_files} failed file(s).")

        return result

    def run_sync(
        self,
        files: list[FileTask],
        on_status_update: Optional[StatusCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """Synchronous wrapper for run()."""
        return asyncio.run(self.run(files, on_status_update, on_progress))
