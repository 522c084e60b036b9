"""Per-model request admission control.

Tracks requests per minute and per day for each model in the usage store
and decides whether a request may proceed now, after waiting for the
current minute window to close, or not at all today.

Day boundaries are computed in a fixed timezone so daily resets do not
depend on where the caller runs.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from ..core.config import DEFAULT_USAGE_TIMEZONE
from ..core.errors import RateLimitExceededDaily
from ..storage.base import UsageStore
from ..types.usage import ModelRateLimit, ModelUsageRecord
from .keyed_lock import KeyedLock

logger = logging.getLogger(__name__)

MINUTE_WINDOW_MS = 60_000

Clock = Callable[[], int]
Sleeper = Callable[[float], Awaitable[None]]


def system_clock_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class UsageTracker:
    """Sliding-window admission control per model.

    Claims for the same model are serialized through a keyed lock so the
    read-modify-write of its counters cannot race. Claims for different
    models run independently.
    """

    def __init__(
        self,
        store: UsageStore,
        timezone: str = DEFAULT_USAGE_TIMEZONE,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ):
        """Initialize the tracker.

        Args:
            store: Usage-counter persistence.
            timezone: IANA zone used to compute day keys.
            clock: Returns epoch milliseconds. Defaults to wall-clock time.
            sleep: Awaitable sleep taking seconds. Defaults to asyncio.sleep.
        """
        self._store = store
        self._tz = ZoneInfo(timezone)
        self._clock = clock or system_clock_ms
        self._sleep = sleep or asyncio.sleep
        self._locks = KeyedLock()
        self._rows: dict[str, ModelUsageRecord] = {}
        self._background: set[asyncio.Task] = set()

    def day_key(self, now_ms: int) -> str:
        """Day key (YYYY-MM-DD) for a timestamp in the tracker's timezone."""
        return datetime.fromtimestamp(now_ms / 1000, tz=self._tz).strftime("%Y-%m-%d")

    async def _load_row(self, model: str, today: str, now: int) -> ModelUsageRecord:
        """Load a model's row, creating it lazily.

        A failing store falls back to the last row this tracker saw.
        """
        try:
            row = await self._store.load_usage_row(model)
        except Exception as e:
            logger.warning(f"Failed to load usage counters for {model}: {e}")
            row = self._rows.get(model)
            row = row.model_copy() if row else None

        if row is None:
            row = ModelUsageRecord(
                model=model,
                day=today,
                minute_window_start=now,
                requests_minute=0,
                requests_day=0,
            )
        return row

    async def claim(self, model: str, limit: Optional[ModelRateLimit] = None) -> None:
        """Admit one request for ``model`` under ``limit``.

        Returns once the request may proceed. Waits for the current minute
        window to close when the per-minute cap is reached.

        Raises:
            RateLimitExceededDaily: If the daily cap is already used up.
        """
        limit = limit or ModelRateLimit()
        if limit.is_unmetered:
            return

        async with self._locks.hold(model):
            now = self._clock()
            today = self.day_key(now)
            row = await self._load_row(model, today, now)

            if row.day != today:
                row.day = today
                row.requests_day = 0

            if now - row.minute_window_start >= MINUTE_WINDOW_MS:
                row.minute_window_start = now
                row.requests_minute = 0

            if limit.rpd > 0 and row.requests_day >= limit.rpd:
                logger.warning(f"{model} used its daily allowance ({limit.rpd} requests)")
                raise RateLimitExceededDaily(model, limit.rpd)

            if limit.rpm > 0 and row.requests_minute >= limit.rpm:
                wait_ms = max(0, MINUTE_WINDOW_MS - (now - row.minute_window_start))
                if wait_ms > 0:
                    logger.info(
                        f"{model} reached {limit.rpm} requests/minute, "
                        f"waiting {wait_ms / 1000:.1f}s for the window to reset"
                    )
                    await self._sleep(wait_ms / 1000)
                after_wait = self._clock()
                row.minute_window_start = after_wait
                row.requests_minute = 0
                if self.day_key(after_wait) != row.day:
                    row.day = self.day_key(after_wait)
                    row.requests_day = 0

            row.requests_minute += 1
            row.requests_day += 1
            self._rows[model] = row.model_copy()

            try:
                await self._store.upsert_usage_row(row)
            except Exception as e:
                logger.warning(f"Failed to update usage counters for {model}: {e}")

    async def sync(self, models: list[str]) -> None:
        """Ensure a zero-initialized usage row exists for every model.

        Existing rows are left untouched. Failures are logged.
        """
        if not models:
            return

        now = self._clock()
        today = self.day_key(now)
        try:
            for model in dict.fromkeys(models):
                await self._store.insert_usage_row_if_missing(
                    ModelUsageRecord(model=model, day=today, minute_window_start=now)
                )
        except Exception as e:
            logger.warning(f"Failed to sync model usage records: {e}")

    def sync_in_background(self, models: list[str]) -> asyncio.Task:
        """Run ``sync`` as a detached task.

        The caller does not await it; any error it raises is logged from
        the task's done callback.
        """
        task = asyncio.create_task(self.sync(models), name="invox-usage-sync")
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            logger.debug("Background usage sync was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Background usage sync failed: {error}")

    async def reset(self, model: Optional[str] = None) -> list[str]:
        """Zero the counters of one model, or of every stored model.

        Returns:
            Names of the models that were reset.
        """
        if model is not None:
            models = [model]
        else:
            models = [row.model for row in await self._store.list_usage_rows()]

        for name in models:
            async with self._locks.hold(name):
                now = self._clock()
                row = ModelUsageRecord(
                    model=name,
                    day=self.day_key(now),
                    minute_window_start=now,
                )
                self._rows[name] = row.model_copy()
                await self._store.upsert_usage_row(row)
            logger.info(f"Reset usage counters for {name}")
        return models

    async def snapshot(self) -> list[ModelUsageRecord]:
        """Stored usage rows, ordered by model."""
        return await self._store.list_usage_rows()
