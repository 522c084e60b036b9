"""Model fallback for a single file."""

import logging
from typing import Optional

from ..catalog.model_catalog import ModelCatalog
from ..core.errors import RateLimitExceededDaily
from ..extraction.inputs import ExtractionInput
from ..types.outcomes import (
    AttemptRecord,
    ErrorClassification,
    ExtractionFailure,
    ExtractionSuccess,
    SequenceResult,
)
from .invoker import ExtractionInvoker
from .usage_tracker import UsageTracker

logger = logging.getLogger(__name__)


class ModelSequencer:
    """Tries candidate models in priority order until one succeeds.

    Rate-limited and timed-out attempts advance to the next model. Any other
    failure stops the chain for this file.
    """

    def __init__(
        self,
        catalog: ModelCatalog,
        usage_tracker: UsageTracker,
        invoker: ExtractionInvoker,
    ):
        self._catalog = catalog
        self._usage = usage_tracker
        self._invoker = invoker

    def resolve_order(self) -> list[str]:
        """Candidate models, de-duplicated, default model first."""
        order = [self._catalog.default_model] + self._catalog.candidate_order()
        return list(dict.fromkeys(order))

    async def run(
        self,
        item: ExtractionInput,
        models: Optional[list[str]] = None,
    ) -> SequenceResult:
        """Extract one file, falling back across models.

        Args:
            item: Normalized document.
            models: Candidate models. Defaults to ``resolve_order()``.

        Returns:
            SequenceResult holding the first success, or the last failure.
        """
        candidates = list(dict.fromkeys(models)) if models is not None else self.resolve_order()
        attempts: list[AttemptRecord] = []
        last_failure: Optional[ExtractionFailure] = None

        for model in candidates:
            try:
                await self._usage.claim(model, self._catalog.limit_for(model))
            except RateLimitExceededDaily as e:
                last_failure = ExtractionFailure(str(e), ErrorClassification.RATE_LIMITED, model)
                attempts.append(
                    AttemptRecord(model, False, last_failure.classification, last_failure.message)
                )
                logger.info(f"{item.label}: skipping {model}, daily limit reached")
                continue

            outcome = await self._invoker.invoke(item, model)

            if isinstance(outcome, ExtractionSuccess):
                attempts.append(AttemptRecord(model, True))
                logger.debug(f"{item.label}: extracted with {model}")
                return SequenceResult(outcome, attempts)

            last_failure = outcome
            attempts.append(AttemptRecord(model, False, outcome.classification, outcome.message))

            if not outcome.classification.is_transient:
                logger.warning(f"{item.label}: {model} failed, not trying other models: {outcome.message}")
                break

            logger.info(
                f"{item.label}: {model} {outcome.classification.value}, trying next model"
            )

        if last_failure is None:
            last_failure = ExtractionFailure("No candidate models available")

        return SequenceResult(last_failure, attempts)
