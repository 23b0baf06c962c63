"""Time-limited immunity from strikes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..clock import Clock, SystemClock
from .exceptions import InvalidAmount


@dataclass(slots=True, frozen=True)
class Protection:
    user_id: int
    protected_by: int | None
    started_at: datetime
    expires_at: datetime

    def remaining_ms(self, now: datetime) -> int:
        return max(0, int((self.expires_at - now).total_seconds() * 1000))


class ProtectionRegistry:
    """At most one protection per user; a new activation replaces the old one."""

    def __init__(self, *, clock: Clock | None = None, default_duration_ms: int = 86_400_000) -> None:
        self._clock = clock or SystemClock()
        self._default_duration_ms = default_duration_ms
        self._protections: dict[int, Protection] = {}

    def activate(
        self, user_id: int, protected_by: int | None = None, duration_ms: int | None = None
    ) -> Protection:
        duration = self._default_duration_ms if duration_ms is None else duration_ms
        if duration <= 0:
            raise InvalidAmount("Duration must be positive")
        now = self._clock.now()
        protection = Protection(
            user_id=user_id,
            protected_by=protected_by,
            started_at=now,
            expires_at=now + timedelta(milliseconds=duration),
        )
        self._protections[user_id] = protection
        return protection

    def get(self, user_id: int) -> Protection | None:
        protection = self._protections.get(user_id)
        if protection is None or protection.expires_at <= self._clock.now():
            return None
        return protection

    def remaining_ms(self, user_id: int) -> int:
        protection = self.get(user_id)
        return protection.remaining_ms(self._clock.now()) if protection else 0

    def is_protected(self, user_id: int) -> bool:
        return self.get(user_id) is not None

    def deactivate(self, user_id: int) -> bool:
        return self._protections.pop(user_id, None) is not None

    def cleanup_expired(self) -> int:
        now = self._clock.now()
        expired = [uid for uid, p in self._protections.items() if p.expires_at <= now]
        for user_id in expired:
            del self._protections[user_id]
        return len(expired)
