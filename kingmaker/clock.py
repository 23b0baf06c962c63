"""Time sources and deferred-callback scheduling."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def elapsed_ms(since: datetime, now: datetime) -> int:
    return int((now - since).total_seconds() * 1000)


class _TaskTimer:
    def __init__(self) -> None:
        self.task: asyncio.Task[None] | None = None
        self.fired = False

    def cancel(self) -> None:
        # Once the sleep is over the callback owns the outcome; it re-checks state itself.
        if self.task is not None and not self.fired:
            self.task.cancel()


class AsyncioScheduler:
    """Run callbacks after a delay on the running event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        timer = _TaskTimer()

        async def runner() -> None:
            await asyncio.sleep(max(0, delay_ms) / 1000)
            timer.fired = True
            await callback()

        task = asyncio.get_running_loop().create_task(runner())
        timer.task = task
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return timer

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Scheduled callback failed", exc_info=exc)

    def pending(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel every pending timer and wait for them to finish."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
