"""Append-only points ledger.

A subject's balance is the sum of its transactions. The ledger keeps a
running balance per subject so reads do not rescan the log, but the store's
sum stays authoritative: ``balance(..., recompute=True)`` and ``reconcile``
go back to the log.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..clock import Clock, SystemClock
from ..storage.base import Transaction, TransactionKind, TransactionStore
from .exceptions import InsufficientFunds, InvalidAmount
from .locks import KeyedLocks

logger = logging.getLogger(__name__)


class Ledger:
    """Record, debit and transfer points between subjects."""

    def __init__(self, store: TransactionStore, *, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._locks = KeyedLocks()
        self._cached: dict[int, int] = {}

    async def record(
        self,
        subject_id: int,
        amount: int,
        counterparty_id: int | None = None,
        reason: str | None = None,
    ) -> Transaction:
        if amount == 0:
            raise InvalidAmount("Amount cannot be zero")
        async with self._locks.hold(subject_id):
            await self._warm(subject_id)
            (transaction,) = await self._append([self._draft(subject_id, amount, counterparty_id, reason)])
        return transaction

    async def redeem(
        self,
        subject_id: int,
        amount: int,
        counterparty_id: int | None = None,
        reason: str | None = None,
    ) -> Transaction:
        """Debit ``amount`` only if the balance covers it."""
        if amount <= 0:
            raise InvalidAmount("Amount must be positive")
        async with self._locks.hold(subject_id):
            have = await self._warm(subject_id)
            if have < amount:
                raise InsufficientFunds(subject_id, have=have, need=amount)
            (transaction,) = await self._append(
                [self._draft(subject_id, -amount, counterparty_id, reason)]
            )
        return transaction

    async def transfer(
        self,
        from_id: int,
        to_id: int,
        amount: int,
        reason: str | None = None,
    ) -> tuple[Transaction, Transaction]:
        if amount <= 0:
            raise InvalidAmount("Amount must be positive")
        if from_id == to_id:
            raise InvalidAmount("Cannot transfer to the same subject")
        async with self._locks.hold(from_id, to_id):
            have = await self._warm(from_id)
            await self._warm(to_id)
            if have < amount:
                raise InsufficientFunds(from_id, have=have, need=amount)
            debit, credit = await self._append(
                [
                    self._draft(from_id, -amount, to_id, reason),
                    self._draft(to_id, amount, from_id, reason),
                ]
            )
        logger.debug("Transferred %s points from %s to %s", amount, from_id, to_id)
        return debit, credit

    async def balance(self, subject_id: int, *, recompute: bool = False) -> int:
        if recompute or subject_id not in self._cached:
            return await self._store.balance(subject_id)
        return self._cached[subject_id]

    async def history(self, subject_id: int, limit: int = 10) -> list[Transaction]:
        """Most recent transactions first."""
        if limit <= 0:
            raise InvalidAmount("Limit must be positive")
        return list(await self._store.recent_for_subject(subject_id, limit))

    async def leaderboard(self, limit: int = 10) -> list[tuple[int, int]]:
        balances = [
            (subject_id, await self._store.balance(subject_id))
            for subject_id in await self._store.subjects()
        ]
        ranked = sorted(
            (item for item in balances if item[1] > 0), key=lambda item: item[1], reverse=True
        )
        return ranked[:limit]

    async def reconcile(self) -> list[int]:
        """Return subjects whose running balance disagrees with the log."""
        drifted: list[int] = []
        for subject_id, cached in list(self._cached.items()):
            actual = await self._store.balance(subject_id)
            if actual != cached:
                logger.warning(
                    "Balance cache drift for %s: cached %s, log %s", subject_id, cached, actual
                )
                drifted.append(subject_id)
        return drifted

    def invalidate(self, subject_id: int | None = None) -> None:
        if subject_id is None:
            self._cached.clear()
        else:
            self._cached.pop(subject_id, None)

    async def _warm(self, subject_id: int) -> int:
        if subject_id not in self._cached:
            self._cached[subject_id] = await self._store.balance(subject_id)
        return self._cached[subject_id]

    async def _append(self, drafts: Sequence[Transaction]) -> list[Transaction]:
        stored = await self._store.append(drafts)
        for tx in stored:
            self._cached[tx.subject_id] = self._cached.get(tx.subject_id, 0) + tx.amount
        return stored

    def _draft(
        self, subject_id: int, amount: int, counterparty_id: int | None, reason: str | None
    ) -> Transaction:
        return Transaction(
            subject_id=subject_id,
            amount=amount,
            kind=TransactionKind.for_amount(amount),
            counterparty_id=counterparty_id,
            reason=reason,
            timestamp=self._clock.now(),
        )
