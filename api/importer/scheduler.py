"""
Server-side auto-refresh for the property import.

The last finished run in `import_runs` is the only clock, so every API
process and every admin browser sees the same countdown. An `asyncio.Lock`
plus a Postgres advisory lock make sure at most one import (scheduled or
manual) or deduplication runs at a time, even across uvicorn workers. Every
worker runs its own loop; the loser of a due-time race just waits for the
winner's run to reset the countdown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from core.settings import env_int

from . import repository, service

DEFAULT_INTERVAL_S = 900
RETRY_DELAY_S = 60

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ImportInProgress(RuntimeError):
    pass


def import_interval_s() -> int:
    value = env_int("IMPORT_INTERVAL_S", DEFAULT_INTERVAL_S)
    return value if value > 0 else DEFAULT_INTERVAL_S


def seconds_remaining(last_finished_at: datetime | None, now: datetime, interval_s: int) -> int:
    """
    Whole seconds until the next automatic import is due.

    No previous run means it is due now. A last run in the future (clock
    skew) counts as having just finished.
    """
    if last_finished_at is None:
        return 0
    elapsed = (now - last_finished_at).total_seconds()
    if elapsed < 0:
        return interval_s
    return max(0, math.ceil(interval_s - elapsed))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImportScheduler:
    def __init__(
        self,
        *,
        interval_s: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._interval_s = interval_s
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    @property
    def interval_s(self) -> int:
        return self._interval_s if self._interval_s is not None else import_interval_s()

    @property
    def is_importing(self) -> bool:
        return self._lock.locked()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def exclusive(self, func: Callable[[], Awaitable[T]]) -> T:
        """
        Run `func` holding the import lock; refuse instead of queueing.

        The in-process lock guards this worker, the advisory lock guards the
        other workers sharing the database.
        """
        if self._lock.locked():
            raise ImportInProgress("An import is already running.")
        async with self._lock:
            async with repository.advisory_lock() as acquired:
                if not acquired:
                    raise ImportInProgress("An import is already running in another process.")
                return await func()

    async def trigger(
        self,
        xml_text: str | None = None,
        *,
        prune: bool = False,
        trigger: str = "manual",
    ) -> service.ImportResult:
        return await self.exclusive(lambda: service.run_import(xml_text, prune=prune, trigger=trigger))

    async def last_run(self) -> dict[str, Any] | None:
        return await repository.last_finished_run()

    async def seconds_until_due(self) -> int:
        last = await self.last_run()
        return seconds_remaining(last["finished_at"] if last else None, self._clock(), self.interval_s)

    async def status(self) -> dict[str, Any]:
        last = await self.last_run()
        remaining = seconds_remaining(last["finished_at"] if last else None, self._clock(), self.interval_s)
        return {
            "state": "importing" if self.is_importing else "idle",
            "seconds_remaining": 0 if self.is_importing else remaining,
            "interval_seconds": self.interval_s,
            "auto_refresh": self.is_running,
            "last_run": last,
        }

    async def run_once_if_due(self) -> float:
        """
        One scheduler step. Returns how long to sleep before the next step.
        """
        try:
            remaining = await self.seconds_until_due()
        except Exception:
            logger.exception("import_schedule_check_failed")
            return RETRY_DELAY_S

        if remaining > 0:
            return remaining

        try:
            await self.trigger(trigger="scheduled")
        except ImportInProgress:
            # A manual run holds the lock; its finish resets the countdown.
            return 1
        except service.ImportFailure as exc:
            logger.warning("scheduled_import_failed error=%s", exc)
        except Exception:
            logger.exception("scheduled_import_crashed")
            return RETRY_DELAY_S
        return self.interval_s

    async def _loop(self) -> None:
        logger.info("import_scheduler_started interval_s=%s", self.interval_s)
        while True:
            delay = await self.run_once_if_due()
            await self._sleep(delay)

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="property-import-scheduler")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("import_scheduler_stopped")


scheduler = ImportScheduler()
