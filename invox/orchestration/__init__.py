"""Execution orchestration for batch extraction."""

from .batch_orchestrator import (
    BackendFactory,
    BatchOrchestrator,
    ProgressCallback,
    StatusCallback,
    default_backend_factory,
)
from .invoker import DEFAULT_ATTEMPT_TIMEOUT, ExtractionInvoker
from .keyed_lock import KeyedLock
from .model_sequencer import ModelSequencer
from .usage_tracker import MINUTE_WINDOW_MS, UsageTracker, system_clock_ms

__all__ = [
    # Orchestrator
    "BackendFactory",
    "BatchOrchestrator",
    "ProgressCallback",
    "StatusCallback",
    "default_backend_factory",
    # Sequencer
    "ModelSequencer",
    # Invoker
    "DEFAULT_ATTEMPT_TIMEOUT",
    "ExtractionInvoker",
    # Usage
    "KeyedLock",
    "MINUTE_WINDOW_MS",
    "UsageTracker",
    "system_clock_ms",
]
