"""Storage abstractions used by the Kingmaker services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol, Sequence


class TransactionKind(str, Enum):
    AWARD = "award"
    REDEEM = "redeem"

    @classmethod
    def for_amount(cls, amount: int) -> "TransactionKind":
        return cls.AWARD if amount > 0 else cls.REDEEM


@dataclass(slots=True, frozen=True)
class Transaction:
    """One immutable ledger line; ``id`` is assigned by the store."""

    subject_id: int
    amount: int
    kind: TransactionKind
    timestamp: datetime
    counterparty_id: int | None = None
    reason: str | None = None
    id: int | None = None


@dataclass(slots=True, frozen=True)
class InventoryEntry:
    owner_id: int
    item_kind: str
    quantity: int = 0


class TransactionStore(Protocol):
    async def append(self, transactions: Sequence[Transaction]) -> list[Transaction]:
        """Persist all transactions or none and return them with ids."""
        ...

    async def balance(self, subject_id: int) -> int:
        ...

    async def recent_for_subject(self, subject_id: int, limit: int = 10) -> Sequence[Transaction]:
        ...

    async def subjects(self) -> Sequence[int]:
        ...


class ItemStore(Protocol):
    async def get(self, owner_id: int, item_kind: str) -> InventoryEntry | None:
        ...

    async def adjust(self, owner_id: int, item_kind: str, delta: int) -> InventoryEntry:
        ...

    async def entries(self, owner_id: int | None = None) -> Sequence[InventoryEntry]:
        ...


class AuditStore(Protocol):
    async def add_entry(self, action: str, payload: dict) -> None:
        ...
