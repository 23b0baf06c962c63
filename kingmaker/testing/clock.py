"""Deterministic simulated time for tests and replays."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from itertools import count

from ..clock import TimerCallback


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.origin = self._now

    def now(self) -> datetime:
        return self._now

    def advance(self, ms: int) -> datetime:
        """Move time forward without firing any timer."""
        if ms < 0:
            raise ValueError("Cannot move a clock backwards")
        self._now += timedelta(milliseconds=ms)
        return self._now

    def set(self, moment: datetime) -> None:
        if moment < self._now:
            raise ValueError("Cannot move a clock backwards")
        self._now = moment

    def at(self, ms: int) -> datetime:
        """Absolute simulated time ``ms`` after the origin."""
        return self.origin + timedelta(milliseconds=ms)


@dataclass(slots=True, eq=False)
class ManualTimer:
    due: datetime
    callback: TimerCallback
    seq: int
    ignore_cancel: bool = False
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        if not self.ignore_cancel:
            self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class ManualScheduler:
    """Scheduler driven by a ``ManualClock``.

    With ``ignore_cancel=True`` every ``cancel()`` is a no-op, which mimics a
    platform where cancelling a timer can lose the race against its firing.
    """

    def __init__(self, clock: ManualClock, *, ignore_cancel: bool = False) -> None:
        self._clock = clock
        self.ignore_cancel = ignore_cancel
        self._timers: list[ManualTimer] = []
        self._seq = count()

    def schedule(self, delay_ms: int, callback: TimerCallback) -> ManualTimer:
        timer = ManualTimer(
            due=self._clock.now() + timedelta(milliseconds=max(0, delay_ms)),
            callback=callback,
            seq=next(self._seq),
            ignore_cancel=self.ignore_cancel,
        )
        self._timers.append(timer)
        return timer

    def pending(self) -> list[ManualTimer]:
        return [timer for timer in self._timers if timer.pending]

    async def run_due(self) -> int:
        """Fire every timer due at the current time, earliest first."""
        return await self._fire_until(self._clock.now())

    async def advance(self, ms: int) -> int:
        """Move time forward by ``ms``, firing timers at their due time."""
        target = self._clock.now() + timedelta(milliseconds=ms)
        fired = await self._fire_until(target)
        self._clock.set(target)
        return fired

    async def advance_to(self, ms: int) -> int:
        """Move to ``ms`` after the clock origin, firing timers on the way."""
        return await self.advance(int((self._clock.at(ms) - self._clock.now()).total_seconds() * 1000))

    async def _fire_until(self, limit: datetime) -> int:
        fired = 0
        while True:
            due = [timer for timer in self._timers if timer.pending and timer.due <= limit]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            if timer.due > self._clock.now():
                self._clock.set(timer.due)
            timer.fired = True
            await timer.callback()
            fired += 1
        self._timers = [timer for timer in self._timers if timer.pending]
        return fired
