"""Model catalog and usage accounting models."""

from pydantic import BaseModel, Field


class ModelRateLimit(BaseModel):
    """Per-model quota. Zero means unmetered."""

    rpm: int = Field(default=0, ge=0, description="Requests per minute")
    rpd: int = Field(default=0, ge=0, description="Requests per day")
    concurrent: int = Field(default=1, ge=0, description="Concurrent request hint")

    @property
    def is_unmetered(self) -> bool:
        """True when neither a minute nor a daily cap applies."""
        return self.rpm <= 0 and self.rpd <= 0


class ModelCatalogEntry(BaseModel):
    """A model as seen by the sequencer."""

    model: str = Field(description="Model identifier")
    limit: ModelRateLimit = Field(default_factory=ModelRateLimit)
    position: int = Field(default=0, description="Index in the fallback order")


class ModelUsageRecord(BaseModel):
    """Persisted request counters for one model."""

    model: str = Field(description="Model identifier (row key)")
    day: str = Field(description="Day key in the usage timezone, YYYY-MM-DD")
    minute_window_start: int = Field(default=0, description="Epoch milliseconds")
    requests_minute: int = Field(default=0, ge=0)
    requests_day: int = Field(default=0, ge=0)
