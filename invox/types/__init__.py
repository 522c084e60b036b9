"""Type definitions and Pydantic models."""

from .files import FileStatus, FileTask
from .outcomes import (
    AttemptRecord,
    BatchResult,
    ErrorClassification,
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
    SequenceResult,
    RATE_LIMIT_STATUS_CODE,
)
from .usage import ModelCatalogEntry, ModelRateLimit, ModelUsageRecord

__all__ = [
    # Files
    "FileStatus",
    "FileTask",
    # Outcomes
    "AttemptRecord",
    "BatchResult",
    "ErrorClassification",
    "ExtractionFailure",
    "ExtractionOutcome",
    "ExtractionSuccess",
    "SequenceResult",
    "RATE_LIMIT_STATUS_CODE",
    # Usage
    "ModelCatalogEntry",
    "ModelRateLimit",
    "ModelUsageRecord",
]
