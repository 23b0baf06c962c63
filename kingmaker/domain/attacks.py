"""Recent attacks that a target may still shield against.

Only the latest attack on a target is kept: a new attack overwrites the
previous record and with it the previous victim's chance to counter. The
expiry timer only tidies up; ``consume_if_present`` checks the window on
its own so a late timer can never make an expired record consumable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..clock import Clock, Scheduler, SystemClock, TimerHandle, elapsed_ms
from .exceptions import AttackNotFound, InvalidAmount
from .ledger import Ledger
from .locks import KeyedLocks

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True, eq=False)
class AttackRecord:
    target_id: int
    attacker_id: int
    attack_kind: str
    amount_at_risk: int
    reason: str | None
    recorded_at: datetime
    window_ms: int
    arena_id: int | None = None

    @property
    def expires_at(self) -> datetime:
        return self.recorded_at + timedelta(milliseconds=self.window_ms)

    def remaining_ms(self, now: datetime) -> int:
        return max(0, self.window_ms - elapsed_ms(self.recorded_at, now))

    def is_live(self, now: datetime) -> bool:
        return self.expires_at > now


class AttackMemory:
    def __init__(
        self,
        scheduler: Scheduler,
        *,
        ledger: Ledger | None = None,
        clock: Clock | None = None,
        default_window_ms: int = 120_000,
    ) -> None:
        self._scheduler = scheduler
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._default_window_ms = default_window_ms
        self._records: dict[int, AttackRecord] = {}
        self._timers: dict[int, TimerHandle] = {}
        self._locks = KeyedLocks()

    def record_attack(
        self,
        target_id: int,
        attacker_id: int,
        attack_kind: str,
        amount_at_risk: int,
        reason: str | None = None,
        window_ms: int | None = None,
        *,
        arena_id: int | None = None,
    ) -> AttackRecord:
        if amount_at_risk <= 0:
            raise InvalidAmount("Amount at risk must be positive")
        window = self._default_window_ms if window_ms is None else window_ms
        if window <= 0:
            raise InvalidAmount("Window must be positive")

        record = AttackRecord(
            target_id=target_id,
            attacker_id=attacker_id,
            attack_kind=attack_kind,
            amount_at_risk=amount_at_risk,
            reason=reason,
            recorded_at=self._clock.now(),
            window_ms=window,
            arena_id=arena_id,
        )

        async def expire() -> None:
            self._expire(record)

        timer = self._scheduler.schedule(window, expire)
        previous = self._records.get(target_id)
        if previous is not None:
            logger.info(
                "Attack on %s by %s replaces pending %s by %s",
                target_id,
                attacker_id,
                previous.attack_kind,
                previous.attacker_id,
            )
        self._cancel_timer(target_id)
        self._records[target_id] = record
        self._timers[target_id] = timer
        return record

    async def consume_if_present(self, target_id: int) -> AttackRecord:
        """Take the live record for ``target_id`` and reverse its loss."""
        async with self._locks.hold(target_id):
            record = self._records.pop(target_id, None)
            if record is None:
                raise AttackNotFound(target_id)
            self._cancel_timer(target_id)
            if not record.is_live(self._clock.now()):
                logger.debug("Attack on %s expired before it was consumed", target_id)
                raise AttackNotFound(target_id)
            if self._ledger is not None:
                try:
                    await self._ledger.record(
                        target_id,
                        record.amount_at_risk,
                        counterparty_id=record.attacker_id,
                        reason=f"Blocked {record.attack_kind}",
                    )
                except Exception:
                    self._restore(record)
                    raise
        return record

    def peek(self, target_id: int) -> AttackRecord | None:
        record = self._records.get(target_id)
        if record is None or not record.is_live(self._clock.now()):
            return None
        return record

    def remaining_window(self, target_id: int) -> int:
        record = self._records.get(target_id)
        if record is None:
            return 0
        return record.remaining_ms(self._clock.now())

    def cleanup_expired(self) -> int:
        now = self._clock.now()
        expired = [
            target_id
            for target_id, record in self._records.items()
            if not record.is_live(now) and not self._locks.locked(target_id)
        ]
        for target_id in expired:
            del self._records[target_id]
            self._cancel_timer(target_id)
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)

    def _expire(self, record: AttackRecord) -> None:
        if self._records.get(record.target_id) is not record:
            return
        del self._records[record.target_id]
        self._timers.pop(record.target_id, None)
        logger.debug("Attack on %s by %s expired", record.target_id, record.attacker_id)

    def _restore(self, record: AttackRecord) -> None:
        if record.target_id in self._records:
            # A newer attack landed meanwhile and overwrites this one anyway.
            return
        remaining = record.remaining_ms(self._clock.now())

        async def expire() -> None:
            self._expire(record)

        self._timers[record.target_id] = self._scheduler.schedule(remaining, expire)
        self._records[record.target_id] = record

    def _cancel_timer(self, target_id: int) -> None:
        timer = self._timers.pop(target_id, None)
        if timer is not None:
            timer.cancel()
