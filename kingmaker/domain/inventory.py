"""Consumable items held by players."""

from __future__ import annotations

from typing import Iterable

from ..storage.base import ItemStore
from .exceptions import InsufficientItems, InvalidAmount, InvalidItemKind
from .locks import KeyedLocks


class InventoryService:
    """Award, use and count items per owner and kind."""

    def __init__(self, store: ItemStore, *, item_kinds: Iterable[str] = ()) -> None:
        self._store = store
        self._item_kinds = frozenset(item_kinds)
        self._locks = KeyedLocks()

    async def award(self, owner_id: int, item_kind: str, amount: int) -> int:
        self._check_kind(item_kind)
        if amount <= 0:
            raise InvalidAmount("Amount must be positive")
        async with self._locks.hold((owner_id, item_kind)):
            entry = await self._store.adjust(owner_id, item_kind, amount)
        return entry.quantity

    async def use(self, owner_id: int, item_kind: str, count: int = 1) -> int:
        self._check_kind(item_kind)
        if count <= 0:
            raise InvalidAmount("Count must be positive")
        async with self._locks.hold((owner_id, item_kind)):
            entry = await self._store.get(owner_id, item_kind)
            have = entry.quantity if entry else 0
            if have < count:
                raise InsufficientItems(owner_id, item_kind, have=have, need=count)
            entry = await self._store.adjust(owner_id, item_kind, -count)
        return entry.quantity

    async def count(self, owner_id: int, item_kind: str) -> int:
        self._check_kind(item_kind)
        entry = await self._store.get(owner_id, item_kind)
        return entry.quantity if entry else 0

    async def holdings(self, owner_id: int) -> dict[str, int]:
        return {entry.item_kind: entry.quantity for entry in await self._store.entries(owner_id)}

    def is_known(self, item_kind: str) -> bool:
        return bool(item_kind) and (not self._item_kinds or item_kind in self._item_kinds)

    def _check_kind(self, item_kind: str) -> None:
        if not self.is_known(item_kind):
            raise InvalidItemKind(item_kind)
