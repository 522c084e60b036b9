"""Single timed extraction attempt."""

import asyncio
import logging

from ..core.errors import AttemptTimeoutError, classify_error
from ..extraction.inputs import ExtractionInput, ExtractionRequest
from ..extraction.parsing import parse_extraction_text
from ..extraction.prompts import INVOICE_JSON_SCHEMA, SYSTEM_INSTRUCTION, USER_PROMPT
from ..storage.base import ExtractionBackend
from ..types.outcomes import (
    ErrorClassification,
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
)

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPT_TIMEOUT = 120.0


def _discard_result(task: asyncio.Task) -> None:
    """Consume the outcome of an abandoned attempt so it is not reported as unhandled."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Abandoned attempt finished with error: {error}")


class ExtractionInvoker:
    """Performs one extraction round-trip for a (file, model) pair.

    The backend call races a per-attempt deadline. If the deadline wins the
    attempt is reported as TimedOut; the call is asked to cancel but is not
    awaited, since a backend may not honour cancellation promptly.
    """

    def __init__(self, backend: ExtractionBackend, timeout_seconds: float = DEFAULT_ATTEMPT_TIMEOUT):
        """Initialize the invoker.

        Args:
            backend: AI extraction endpoint.
            timeout_seconds: Deadline for a single attempt.
        """
        self._backend = backend
        self._timeout = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        """Per-attempt deadline."""
        return self._timeout

    @staticmethod
    def build_request(item: ExtractionInput) -> ExtractionRequest:
        """Request payload for one document."""
        return ExtractionRequest(
            system_instruction=SYSTEM_INSTRUCTION,
            user_prompt=USER_PROMPT,
            json_schema=INVOICE_JSON_SCHEMA,
            file_bytes=item.data,
            mime_type=item.mime_type,
            display_name=item.label,
        )

    async def invoke(self, item: ExtractionInput, model: str) -> ExtractionOutcome:
        """Run one attempt. Never raises for attempt-level failures.

        Returns:
            ExtractionSuccess with the parsed payload (or ``{"_raw": text}``
            when the response is not a JSON object), or ExtractionFailure
            with its classification.
        """
        request = self.build_request(item)
        task = asyncio.ensure_future(self._backend.generate(request, model))

        done, _ = await asyncio.wait({task}, timeout=self._timeout)
        if not done:
            task.cancel()
            task.add_done_callback(_discard_result)
            error = AttemptTimeoutError(model, self._timeout)
            logger.warning(f"{item.label}: {error}")
            return ExtractionFailure(str(error), ErrorClassification.TIMED_OUT, model)

        if task.cancelled():
            message = f"Request to {model} was cancelled"
            logger.warning(f"{item.label}: {message}")
            return ExtractionFailure(message, ErrorClassification.OTHER, model)

        error = task.exception()
        if error is not None:
            classification = classify_error(error)
            message = str(error) or type(error).__name__
            logger.debug(f"{item.label}: {model} failed ({classification.value}): {message}")
            return ExtractionFailure(message, classification, model)

        payload = parse_extraction_text(task.result())
        outcome = ExtractionSuccess(payload, model)
        if outcome.is_raw:
            logger.warning(f"{item.label}: {model} returned non-JSON text, keeping raw response")
        return outcome
