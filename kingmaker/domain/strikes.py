"""Item attacks and the shield counter-defense."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import StrikeConfig
from .attacks import AttackMemory, AttackRecord
from .events import EventBus
from .exceptions import AttackNotFound, InvalidItemKind, NothingToTake, TargetProtected
from .inventory import InventoryService
from .ledger import Ledger
from .protection import ProtectionRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StrikeOutcome:
    record: AttackRecord
    points_taken: int
    target_balance: int
    items_left: int


class StrikeService:
    def __init__(
        self,
        ledger: Ledger,
        inventory: InventoryService,
        attacks: AttackMemory,
        protections: ProtectionRegistry,
        event_bus: EventBus,
        config: StrikeConfig,
    ) -> None:
        self._ledger = ledger
        self._inventory = inventory
        self._attacks = attacks
        self._protections = protections
        self._events = event_bus
        self._config = config

    async def strike(
        self,
        attacker_id: int,
        target_id: int,
        item_kind: str = "bomb",
        *,
        arena_id: int | None = None,
        reason: str | None = None,
    ) -> StrikeOutcome:
        damage = self._config.damage.get(item_kind)
        if not damage or damage <= 0:
            raise InvalidItemKind(item_kind)
        if self._protections.is_protected(target_id):
            raise TargetProtected(target_id, self._protections.remaining_ms(target_id))

        balance = await self._ledger.balance(target_id)
        if balance <= 0:
            raise NothingToTake(target_id)

        items_left = await self._inventory.use(attacker_id, item_kind)
        points = min(damage, balance)
        reason = reason or f"{item_kind.title()} used by {attacker_id}"
        try:
            await self._ledger.redeem(target_id, points, counterparty_id=attacker_id, reason=reason)
        except Exception:
            await self._inventory.award(attacker_id, item_kind, 1)
            raise

        try:
            record = self._attacks.record_attack(
                target_id,
                attacker_id,
                item_kind,
                points,
                reason,
                self._config.attack_window_ms,
                arena_id=arena_id,
            )
        except Exception:
            await self._ledger.record(
                target_id, points, counterparty_id=attacker_id, reason="Refund - strike failed"
            )
            await self._inventory.award(attacker_id, item_kind, 1)
            logger.error("Could not record strike on %s; points and item returned", target_id)
            raise

        target_balance = await self._ledger.balance(target_id)
        logger.info("%s hit %s with %s for %s points", attacker_id, target_id, item_kind, points)
        await self._events.publish(
            "strike.landed",
            {
                "attacker_id": attacker_id,
                "target_id": target_id,
                "item_kind": item_kind,
                "points": points,
                "arena_id": arena_id,
            },
        )
        return StrikeOutcome(
            record=record,
            points_taken=points,
            target_balance=target_balance,
            items_left=items_left,
        )

    async def shield(self, target_id: int) -> AttackRecord:
        """Spend a shield to undo the latest attack on ``target_id``."""
        if self._attacks.peek(target_id) is None:
            raise AttackNotFound(target_id)
        shield_item = self._config.shield_item
        await self._inventory.use(target_id, shield_item)
        try:
            record = await self._attacks.consume_if_present(target_id)
        except Exception:
            await self._inventory.award(target_id, shield_item, 1)
            raise

        logger.info(
            "%s shielded %s from %s, restoring %s points",
            target_id,
            record.attack_kind,
            record.attacker_id,
            record.amount_at_risk,
        )
        await self._events.publish(
            "strike.shielded",
            {
                "target_id": target_id,
                "attacker_id": record.attacker_id,
                "item_kind": record.attack_kind,
                "points": record.amount_at_risk,
                "arena_id": record.arena_id,
            },
        )
        return record
