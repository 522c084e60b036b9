"""Gemini model catalog.

The catalog names the default model, the known models, the fallback order
and per-model rate limits. It is an explicit object built once at startup
and handed to the usage tracker, sequencer and orchestrator.

Catalogs are persisted as JSON and can be refreshed from a remote URL.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import httpx
import orjson

from ..core.errors import CatalogError
from ..types.usage import ModelCatalogEntry, ModelRateLimit

if TYPE_CHECKING:
    from ..orchestration.usage_tracker import UsageTracker

logger = logging.getLogger(__name__)

CATALOG_FETCH_TIMEOUT = 30.0

DEFAULT_MODEL = "gemini-2.5-flash"

DEFAULT_MODELS = [
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-2.5-flash-lite",
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
]

DEFAULT_RATE_LIMITS: dict[str, ModelRateLimit] = {
    "gemini-2.5-flash": ModelRateLimit(rpm=10, rpd=1000, concurrent=5),
    "gemini-2.5-flash-lite": ModelRateLimit(rpm=15, rpd=1500, concurrent=5),
    "gemini-2.0-flash": ModelRateLimit(rpm=15, rpd=1500, concurrent=5),
    "gemini-2.0-flash-lite": ModelRateLimit(rpm=30, rpd=3000, concurrent=10),
    "gemini-2.5-pro": ModelRateLimit(rpm=2, rpd=100, concurrent=1),
}


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _to_number(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return max(0, int(value))


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if _is_non_empty_string(item)]


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


@dataclass
class ModelCatalog:
    """Models, their ordering and their rate limits."""

    default_model: str = DEFAULT_MODEL
    models: list[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    fallback_order: list[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    rate_limits: dict[str, ModelRateLimit] = field(
        default_factory=lambda: {k: v.model_copy() for k, v in DEFAULT_RATE_LIMITS.items()}
    )

    @classmethod
    def default(cls) -> "ModelCatalog":
        """The built-in catalog."""
        return cls()

    @classmethod
    def normalize(cls, raw: Any) -> "ModelCatalog":
        """Build a catalog from untrusted JSON.

        Accepts camelCase keys (``defaultModel``, ``fallbackOrder``,
        ``rateLimits``). Invalid input yields the default catalog. The
        default model is always present in both ``models`` and
        ``fallback_order``. Rate limits are merged over the defaults field
        by field.
        """
        if not isinstance(raw, dict):
            return cls.default()

        raw_models = _string_list(raw.get("models"))
        raw_fallback = _string_list(raw.get("fallbackOrder"))

        default_candidate = raw.get("defaultModel")
        default_candidate = (
            default_candidate.strip() if _is_non_empty_string(default_candidate) else None
        )

        models = _dedupe(raw_models + raw_fallback)
        fallback_order = _dedupe(raw_fallback) if raw_fallback else list(models)
        default_model = (
            default_candidate
            or (fallback_order[0] if fallback_order else None)
            or (models[0] if models else None)
            or DEFAULT_MODEL
        )

        if default_model not in models:
            models.insert(0, default_model)
        if default_model not in fallback_order:
            fallback_order.insert(0, default_model)

        rate_limits = {k: v.model_copy() for k, v in DEFAULT_RATE_LIMITS.items()}
        raw_limits = raw.get("rateLimits")
        if isinstance(raw_limits, dict):
            for model, limit in raw_limits.items():
                if not _is_non_empty_string(model) or not isinstance(limit, dict):
                    continue
                base = rate_limits.get(model, ModelRateLimit())
                rpm = _to_number(limit.get("rpm"))
                rpd = _to_number(limit.get("rpd"))
                concurrent = _to_number(limit.get("concurrent"))
                rate_limits[model] = ModelRateLimit(
                    rpm=base.rpm if rpm is None else rpm,
                    rpd=base.rpd if rpd is None else rpd,
                    concurrent=base.concurrent if concurrent is None else concurrent,
                )

        return cls(
            default_model=default_model,
            models=models,
            fallback_order=fallback_order,
            rate_limits=rate_limits,
        )

    def limit_for(self, model: str) -> ModelRateLimit:
        """Rate limit for a model. Unknown models are unmetered."""
        return self.rate_limits.get(model) or ModelRateLimit()

    def candidate_order(self) -> list[str]:
        """Configured fallback order, or the model list when it is empty."""
        return list(self.fallback_order) if self.fallback_order else list(self.models)

    def entries(self) -> list[ModelCatalogEntry]:
        """Catalog entries in fallback order, then any remaining models."""
        ordered = _dedupe(self.candidate_order() + self.models)
        return [
            ModelCatalogEntry(model=model, limit=self.limit_for(model), position=index)
            for index, model in enumerate(ordered)
        ]

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the on-disk (camelCase) format."""
        return {
            "defaultModel": self.default_model,
            "models": list(self.models),
            "fallbackOrder": list(self.fallback_order),
            "rateLimits": {
                model: limit.model_dump() for model, limit in self.rate_limits.items()
            },
        }


class ModelCatalogStore:
    """Loads, saves and refreshes the catalog file."""

    def __init__(self, path: Path):
        """Initialize the store.

        Args:
            path: Location of the catalog JSON file.
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Location of the catalog file."""
        return self._path

    def load(self) -> ModelCatalog:
        """Load the catalog from disk, falling back to the built-in one."""
        if not self._path.exists():
            return ModelCatalog.default()
        try:
            return ModelCatalog.normalize(orjson.loads(self._path.read_bytes()))
        except (OSError, orjson.JSONDecodeError) as e:
            logger.warning(f"Failed to load model catalog from {self._path}: {e}")
            return ModelCatalog.default()

    def save(self, catalog: ModelCatalog) -> None:
        """Persist the catalog. Failures are logged, not raised."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_bytes(orjson.dumps(catalog.to_dict(), option=orjson.OPT_INDENT_2))
        except OSError as e:
            logger.warning(f"Failed to persist model catalog: {e}")

    async def fetch(self, url: str) -> ModelCatalog:
        """Download and normalize a catalog.

        Raises:
            CatalogError: If the request fails or the body is not JSON.
        """
        try:
            async with httpx.AsyncClient(timeout=CATALOG_FETCH_TIMEOUT) as client:
                response = await client.get(url, headers={"Cache-Control": "no-store"})
        except httpx.RequestError as e:
            raise CatalogError(f"Failed to fetch Gemini catalog: {e}") from e

        if not response.is_success:
            raise CatalogError(f"Failed to fetch Gemini catalog ({response.status_code})")

        try:
            return ModelCatalog.normalize(orjson.loads(response.content))
        except orjson.JSONDecodeError as e:
            raise CatalogError(f"Gemini catalog is not valid JSON: {e}") from e

    async def refresh(
        self,
        url: Optional[str],
        usage_tracker: Optional["UsageTracker"] = None,
    ) -> ModelCatalog:
        """Fetch the remote catalog, persist it and sync usage rows.

        Any failure is logged and the locally available catalog is returned.
        """
        if not url:
            logger.warning("Gemini model catalog URL is not configured")
            return self.load()

        try:
            catalog = await self.fetch(url)
        except CatalogError as e:
            logger.warning(f"Failed to refresh Gemini model catalog: {e}")
            return self.load()

        self.save(catalog)
        if usage_tracker is not None:
            await usage_tracker.sync(catalog.models)
        logger.info(f"Refreshed model catalog: {len(catalog.models)} models")
        return catalog
