"""Extraction outcomes and batch results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

RATE_LIMIT_STATUS_CODE = 429


class ErrorClassification(str, Enum):
    """How a failed attempt affects the fallback chain."""

    RATE_LIMITED = "RateLimited"
    TIMED_OUT = "TimedOut"
    OTHER = "Other"

    @property
    def is_transient(self) -> bool:
        """Transient failures advance to the next candidate model."""
        return self is not ErrorClassification.OTHER


@dataclass
class ExtractionSuccess:
    """Payload returned by a successful attempt."""

    payload: dict[str, Any]
    model: Optional[str] = None

    @property
    def is_raw(self) -> bool:
        """True when the response could not be parsed as JSON."""
        return set(self.payload) == {"_raw"}


@dataclass
class ExtractionFailure:
    """A failed attempt or a file that exhausted its candidates."""

    message: str
    classification: ErrorClassification = ErrorClassification.OTHER
    model: Optional[str] = None

    @property
    def status_code(self) -> Optional[int]:
        """429 when the failure was rate-limit-like, else None."""
        if self.classification is ErrorClassification.RATE_LIMITED:
            return RATE_LIMIT_STATUS_CODE
        return None

    def to_payload(self) -> dict[str, Any]:
        """Payload stored for a failed file."""
        return {"error": self.message, "statusCode": self.status_code}


ExtractionOutcome = Union[ExtractionSuccess, ExtractionFailure]


@dataclass
class AttemptRecord:
    """One (file, model) attempt made by the sequencer."""

    model: str
    succeeded: bool
    classification: Optional[ErrorClassification] = None
    message: Optional[str] = None


@dataclass
class SequenceResult:
    """Final outcome for one file plus the attempts that led to it."""

    outcome: ExtractionOutcome
    attempts: list[AttemptRecord] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether any candidate model succeeded."""
        return isinstance(self.outcome, ExtractionSuccess)


@dataclass
class BatchResult:
    """Aggregate counts of a batch run."""

    processed_files: int = 0
    failed_files: int = 0
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def total_files(self) -> int:
        """Number of files that reached a terminal status."""
        return self.processed_files + self.failed_files

    @property
    def duration_seconds(self) -> float:
        """Get total run duration."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0
