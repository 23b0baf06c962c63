"""Plots: the caller side of the attempt registry.

A plot costs the initiator points up front. If nobody blocks it in time the
initiator wins and ``plot.succeeded`` is published for the role service to
act on. If defenders block it they are rewarded and the initiator keeps no
refund.
"""

from __future__ import annotations

import logging

from ..config import PlotConfig
from .attempts import Attempt, AttemptRegistry, BlockOutcome, SuccessCallback
from .events import EventBus
from .exceptions import InvalidItemKind
from .inventory import InventoryService
from .ledger import Ledger

logger = logging.getLogger(__name__)


class PlotService:
    def __init__(
        self,
        attempts: AttemptRegistry,
        ledger: Ledger,
        inventory: InventoryService,
        event_bus: EventBus,
        config: PlotConfig,
    ) -> None:
        self._attempts = attempts
        self._ledger = ledger
        self._inventory = inventory
        self._events = event_bus
        self._config = config

    async def launch(
        self,
        arena_id: int,
        initiator_id: int,
        target_id: int,
        *,
        on_success: SuccessCallback | None = None,
        cost: int | None = None,
        window_ms: int | None = None,
        defenders_required: int = 1,
    ) -> Attempt:
        async def succeeded(attempt: Attempt) -> None:
            await self._events.publish(
                "plot.succeeded",
                {
                    "arena_id": attempt.arena_id,
                    "initiator_id": attempt.initiator_id,
                    "target_id": attempt.target_id,
                    "cost": attempt.cost,
                },
            )
            if on_success is not None:
                await on_success(attempt)

        attempt = await self._attempts.start(
            arena_id,
            initiator_id,
            target_id,
            self._config.cost if cost is None else cost,
            self._config.window_ms if window_ms is None else window_ms,
            on_success=succeeded,
            defenders_required=defenders_required,
            reason=f"Plot against {target_id}",
        )
        await self._events.publish(
            "plot.launched",
            {
                "arena_id": arena_id,
                "initiator_id": initiator_id,
                "target_id": target_id,
                "cost": attempt.cost,
                "window_ms": attempt.window_ms,
            },
        )
        return attempt

    async def foil(self, arena_id: int, defender_id: int) -> BlockOutcome:
        """Block the plot in ``arena_id``, spending one block item if configured.

        Reward item kinds are checked before the block so a bad reward table
        fails without touching the attempt.
        """
        for item_kind in self._config.defender_items:
            if not self._inventory.is_known(item_kind):
                raise InvalidItemKind(item_kind)

        block_item = self._config.block_item
        if block_item:
            await self._inventory.use(defender_id, block_item)
        try:
            outcome = await self._attempts.block(arena_id, defender_id)
        except Exception:
            if block_item:
                await self._inventory.award(defender_id, block_item, 1)
            raise
        if not outcome.resolved:
            return outcome

        attempt = outcome.attempt
        reward = self._config.defender_reward
        for defender in outcome.defenders:
            if reward > 0:
                await self._ledger.record(
                    defender,
                    reward,
                    counterparty_id=attempt.initiator_id,
                    reason=f"Blocked plot against {attempt.target_id}",
                )
            for item_kind, amount in self._config.defender_items.items():
                if amount > 0:
                    await self._inventory.award(defender, item_kind, amount)

        await self._events.publish(
            "plot.foiled",
            {
                "arena_id": arena_id,
                "initiator_id": attempt.initiator_id,
                "target_id": attempt.target_id,
                "defenders": list(outcome.defenders),
                "reward": reward,
            },
        )
        return outcome

    async def withdraw(self, arena_id: int, *, refund: bool = True) -> Attempt | None:
        attempt = await self._attempts.cancel(arena_id)
        if attempt is None:
            return None
        if refund and attempt.cost:
            await self._ledger.record(
                attempt.initiator_id,
                attempt.cost,
                counterparty_id=attempt.target_id,
                reason="Refund - plot withdrawn",
            )
        logger.info("Plot in arena %s withdrawn (refund=%s)", arena_id, refund)
        await self._events.publish(
            "plot.withdrawn",
            {
                "arena_id": arena_id,
                "initiator_id": attempt.initiator_id,
                "target_id": attempt.target_id,
                "refunded": refund and bool(attempt.cost),
            },
        )
        return attempt

    def remaining_ms(self, arena_id: int) -> int:
        return self._attempts.remaining_ms(arena_id)
