"""Exception taxonomy and error classification."""

import asyncio
from typing import Any, Optional

from ..types.outcomes import RATE_LIMIT_STATUS_CODE, ErrorClassification

RATE_LIMIT_MARKERS = ("rate limit", "quota")


class InvoxError(Exception):
    """Base class for Invox errors."""


class CredentialMissingError(InvoxError):
    """No API key is available; the batch cannot start."""

    def __init__(self, message: str = "Set your Gemini API key before processing files."):
        super().__init__(message)


class EmptyBatchError(InvoxError, ValueError):
    """A batch was submitted without files."""

    def __init__(self, message: str = "No files provided for processing."):
        super().__init__(message)


class RateLimitExceededDaily(InvoxError):
    """A model has used its daily request allowance."""

    status_code = RATE_LIMIT_STATUS_CODE

    def __init__(self, model: str, limit: int):
        self.model = model
        self.limit = limit
        super().__init__(
            f"Gemini model {model} exceeded daily rate limit ({limit}). "
            "Reset the daily counter to continue."
        )


class AttemptTimeoutError(InvoxError):
    """A single extraction attempt ran past its deadline."""

    def __init__(self, model: str, seconds: float):
        self.model = model
        self.seconds = seconds
        super().__init__(f"Request to {model} timed out after {seconds:g} seconds")


class CatalogError(InvoxError):
    """The model catalog could not be fetched or parsed."""


def _status_code_of(error: BaseException) -> Optional[int]:
    """Find an HTTP status code carried by an error, if any."""
    for attr in ("code", "status_code"):
        value: Any = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify_error(error: BaseException) -> ErrorClassification:
    """Decide whether an attempt failure should advance the fallback chain.

    Timeouts are always TimedOut. Errors carrying HTTP 429, or whose message
    mentions a rate limit or quota, are RateLimited. Everything else is Other.
    """
    if isinstance(error, (AttemptTimeoutError, asyncio.TimeoutError)):
        return ErrorClassification.TIMED_OUT
    if isinstance(error, RateLimitExceededDaily):
        return ErrorClassification.RATE_LIMITED
    if _status_code_of(error) == RATE_LIMIT_STATUS_CODE:
        return ErrorClassification.RATE_LIMITED

    message = str(error).lower()
    if str(RATE_LIMIT_STATUS_CODE) in message:
        return ErrorClassification.RATE_LIMITED
    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return ErrorClassification.RATE_LIMITED
    return ErrorClassification.OTHER
