"""In-memory storage backend for Kingmaker."""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import replace
from datetime import datetime, timezone
from itertools import count
from typing import DefaultDict, Deque, Sequence

from .base import AuditStore, InventoryEntry, ItemStore, Transaction, TransactionStore


class InMemoryTransactionStore(TransactionStore):
    def __init__(self) -> None:
        self._by_subject: DefaultDict[int, list[Transaction]] = defaultdict(list)
        self._ids = count(1)

    async def append(self, transactions: Sequence[Transaction]) -> list[Transaction]:
        stored = [replace(tx, id=next(self._ids)) for tx in transactions]
        for tx in stored:
            self._by_subject[tx.subject_id].append(tx)
        return stored

    async def balance(self, subject_id: int) -> int:
        return sum(tx.amount for tx in self._by_subject.get(subject_id, ()))

    async def recent_for_subject(self, subject_id: int, limit: int = 10) -> Sequence[Transaction]:
        return list(reversed(self._by_subject.get(subject_id, ())))[:limit]

    async def subjects(self) -> Sequence[int]:
        return list(self._by_subject)


class InMemoryItemStore(ItemStore):
    def __init__(self) -> None:
        self._quantities: dict[tuple[int, str], int] = {}

    async def get(self, owner_id: int, item_kind: str) -> InventoryEntry | None:
        key = (owner_id, item_kind)
        if key not in self._quantities:
            return None
        return InventoryEntry(owner_id=owner_id, item_kind=item_kind, quantity=self._quantities[key])

    async def adjust(self, owner_id: int, item_kind: str, delta: int) -> InventoryEntry:
        key = (owner_id, item_kind)
        quantity = self._quantities.get(key, 0) + delta
        if quantity < 0:
            raise ValueError(f"Quantity of {item_kind} for {owner_id} would become {quantity}")
        self._quantities[key] = quantity
        return InventoryEntry(owner_id=owner_id, item_kind=item_kind, quantity=quantity)

    async def entries(self, owner_id: int | None = None) -> Sequence[InventoryEntry]:
        return [
            InventoryEntry(owner_id=owner, item_kind=kind, quantity=quantity)
            for (owner, kind), quantity in self._quantities.items()
            if owner_id is None or owner == owner_id
        ]


class InMemoryAuditStore(AuditStore):
    def __init__(self, *, maxlen: int = 1000) -> None:
        self._entries: Deque[tuple[datetime, str, dict]] = deque(maxlen=maxlen)

    async def add_entry(self, action: str, payload: dict) -> None:
        self._entries.append((datetime.now(timezone.utc), action, payload))

    def dump(self) -> list[tuple[datetime, str, dict]]:
        return list(self._entries)
