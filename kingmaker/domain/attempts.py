"""Timed adversarial attempts, one per arena.

An attempt is started by paying its cost and then resolves exactly once:
either defenders block it inside the window, or the window elapses and the
deferred callback resolves it in the initiator's favour. Both paths take the
arena lock and only act if the arena still holds the very same ACTIVE
attempt, so the loser of a block/timeout race sees a changed status and
backs off quietly. The slot is always cleared before consequences run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable

from ..clock import Clock, Scheduler, SystemClock, TimerHandle, elapsed_ms
from .exceptions import AlreadyActive, AlreadyBlocked, AlreadyExpired, InvalidAmount, NoActiveAttempt
from .ledger import Ledger
from .locks import KeyedLocks

logger = logging.getLogger(__name__)


class AttemptStatus(str, Enum):
    ACTIVE = "active"
    BLOCKED = "blocked"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


@dataclass(slots=True, eq=False)
class Attempt:
    arena_id: int
    initiator_id: int
    target_id: int
    cost: int
    started_at: datetime
    window_ms: int
    defenders: list[int] = field(default_factory=list)
    status: AttemptStatus = AttemptStatus.ACTIVE
    defenders_required: int = 1
    reason: str | None = None

    def elapsed_ms(self, now: datetime) -> int:
        return elapsed_ms(self.started_at, now)

    def remaining_ms(self, now: datetime) -> int:
        return max(0, self.window_ms - self.elapsed_ms(now))

    def snapshot(self) -> "Attempt":
        return replace(self, defenders=list(self.defenders))


@dataclass(slots=True, frozen=True)
class BlockOutcome:
    attempt: Attempt
    defenders: tuple[int, ...]
    resolved: bool


SuccessCallback = Callable[[Attempt], Awaitable[None]]


class AttemptRegistry:
    """Own the per-arena attempt slots and their timers."""

    def __init__(
        self,
        ledger: Ledger,
        scheduler: Scheduler,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._ledger = ledger
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._active: dict[int, Attempt] = {}
        self._timers: dict[int, TimerHandle] = {}
        self._locks = KeyedLocks()

    async def start(
        self,
        arena_id: int,
        initiator_id: int,
        target_id: int,
        cost: int,
        window_ms: int,
        *,
        on_success: SuccessCallback | None = None,
        defenders_required: int = 1,
        reason: str | None = None,
    ) -> Attempt:
        if cost < 0:
            raise InvalidAmount("Cost cannot be negative")
        if window_ms <= 0:
            raise InvalidAmount("Window must be positive")
        if defenders_required < 1:
            raise InvalidAmount("At least one defender is required")

        async with self._locks.hold(arena_id):
            if arena_id in self._active:
                raise AlreadyActive(arena_id)
            if cost:
                await self._ledger.redeem(
                    initiator_id,
                    cost,
                    counterparty_id=target_id,
                    reason=reason or f"Attempt on {target_id}",
                )

            attempt: Attempt | None = None
            try:
                attempt = Attempt(
                    arena_id=arena_id,
                    initiator_id=initiator_id,
                    target_id=target_id,
                    cost=cost,
                    started_at=self._clock.now(),
                    window_ms=window_ms,
                    defenders_required=defenders_required,
                    reason=reason,
                )
                self._active[arena_id] = attempt
                self._timers[arena_id] = self._scheduler.schedule(
                    window_ms, self._timeout_callback(attempt, on_success)
                )
            except Exception:
                if attempt is not None and self._active.get(arena_id) is attempt:
                    del self._active[arena_id]
                self._timers.pop(arena_id, None)
                if cost:
                    await self._ledger.record(
                        initiator_id,
                        cost,
                        counterparty_id=target_id,
                        reason="Refund - attempt failed",
                    )
                logger.error("Could not start attempt in arena %s; cost refunded", arena_id)
                raise
            snapshot = attempt.snapshot()

        logger.info(
            "Attempt started in arena %s: %s -> %s (cost %s, window %s ms)",
            arena_id,
            initiator_id,
            target_id,
            cost,
            window_ms,
        )
        return snapshot

    async def block(self, arena_id: int, defender_id: int) -> BlockOutcome:
        async with self._locks.hold(arena_id):
            attempt = self._active.get(arena_id)
            if attempt is None or attempt.status is not AttemptStatus.ACTIVE:
                raise NoActiveAttempt(arena_id)
            elapsed = attempt.elapsed_ms(self._clock.now())
            if elapsed >= attempt.window_ms:
                raise AlreadyExpired(arena_id, elapsed)
            if defender_id in attempt.defenders:
                raise AlreadyBlocked(arena_id, defender_id)

            attempt.defenders.append(defender_id)
            if len(attempt.defenders) < attempt.defenders_required:
                snapshot = attempt.snapshot()
                return BlockOutcome(
                    attempt=snapshot, defenders=tuple(snapshot.defenders), resolved=False
                )

            self._cancel_timer(arena_id)
            attempt.status = AttemptStatus.BLOCKED
            self._release(attempt)
            snapshot = attempt.snapshot()

        logger.info("Attempt in arena %s blocked by %s", arena_id, snapshot.defenders)
        return BlockOutcome(attempt=snapshot, defenders=tuple(snapshot.defenders), resolved=True)

    async def cancel(self, arena_id: int) -> Attempt | None:
        """Withdraw the active attempt without applying any consequence."""
        async with self._locks.hold(arena_id):
            attempt = self._active.get(arena_id)
            if attempt is None:
                return None
            self._cancel_timer(arena_id)
            attempt.status = AttemptStatus.CANCELLED
            self._release(attempt)
            snapshot = attempt.snapshot()
        logger.info("Attempt in arena %s cancelled", arena_id)
        return snapshot

    def query(self, arena_id: int) -> Attempt | None:
        attempt = self._active.get(arena_id)
        return attempt.snapshot() if attempt else None

    def remaining_ms(self, arena_id: int) -> int:
        attempt = self._active.get(arena_id)
        if attempt is None:
            return 0
        return attempt.remaining_ms(self._clock.now())

    def active_arenas(self) -> list[int]:
        return list(self._active)

    def _timeout_callback(
        self, attempt: Attempt, on_success: SuccessCallback | None
    ) -> Callable[[], Awaitable[None]]:
        async def fire() -> None:
            await self._resolve_on_timeout(attempt, on_success)

        return fire

    async def _resolve_on_timeout(
        self, attempt: Attempt, on_success: SuccessCallback | None
    ) -> None:
        async with self._locks.hold(attempt.arena_id):
            if (
                self._active.get(attempt.arena_id) is not attempt
                or attempt.status is not AttemptStatus.ACTIVE
            ):
                logger.debug("Stale timer for arena %s ignored", attempt.arena_id)
                return
            attempt.status = AttemptStatus.RESOLVED
            self._release(attempt)
            snapshot = attempt.snapshot()

        logger.info("Attempt in arena %s resolved by timeout", attempt.arena_id)
        if on_success is None:
            return
        try:
            await on_success(snapshot)
        except Exception:
            logger.exception(
                "Success consequence for arena %s failed; arena already cleared", attempt.arena_id
            )

    def _release(self, attempt: Attempt) -> None:
        del self._active[attempt.arena_id]
        self._timers.pop(attempt.arena_id, None)

    def _cancel_timer(self, arena_id: int) -> None:
        timer = self._timers.pop(arena_id, None)
        if timer is not None:
            timer.cancel()
