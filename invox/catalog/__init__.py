"""Model catalog: known models, fallback order and rate limits."""

from .model_catalog import (
    DEFAULT_MODEL,
    DEFAULT_MODELS,
    DEFAULT_RATE_LIMITS,
    ModelCatalog,
    ModelCatalogStore,
)

__all__ = [
    "DEFAULT_MODEL",
    "DEFAULT_MODELS",
    "DEFAULT_RATE_LIMITS",
    "ModelCatalog",
    "ModelCatalogStore",
]
