"""Administrative operations for Kingmaker engines."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from ..domain.attempts import Attempt
from ..domain.events import EventBus
from ..domain.exceptions import InvalidAmount, NotAuthorized
from ..domain.inventory import InventoryService
from ..domain.ledger import Ledger
from ..domain.plots import PlotService
from ..domain.protection import Protection, ProtectionRegistry
from ..storage.base import AuditStore, Transaction


class AdminService:
    """Audited admin actions.

    When ``admin_ids`` is empty every caller is trusted (local tooling);
    otherwise the acting user must be listed.
    """

    def __init__(
        self,
        ledger: Ledger,
        inventory: InventoryService,
        plots: PlotService,
        protections: ProtectionRegistry,
        audit_store: AuditStore,
        event_bus: EventBus,
        *,
        admin_ids: Iterable[int] = (),
        enable_audit_logs: bool = True,
    ) -> None:
        self._ledger = ledger
        self._inventory = inventory
        self._plots = plots
        self._protections = protections
        self._audit_store = audit_store
        self._events = event_bus
        self._admin_ids = frozenset(admin_ids)
        self._audit_enabled = enable_audit_logs

    def is_admin(self, user_id: int | None) -> bool:
        return not self._admin_ids or user_id in self._admin_ids

    async def grant_points(
        self, user_id: int, amount: int, *, granted_by: int | None = None, reason: str | None = None
    ) -> Transaction:
        """Award (or, with a negative amount, fine) points."""
        self._authorize(granted_by)
        if amount == 0:
            raise InvalidAmount("Amount cannot be zero")
        transaction = await self._ledger.record(
            user_id, amount, counterparty_id=granted_by, reason=reason
        )
        await self._audit(
            "grant_points",
            {"user_id": user_id, "amount": amount, "granted_by": granted_by, "reason": reason},
        )
        await self._events.publish(
            "admin.points.granted", {"user_id": user_id, "amount": amount, "granted_by": granted_by}
        )
        return transaction

    async def grant_items(
        self, user_id: int, item_kind: str, amount: int, *, granted_by: int | None = None
    ) -> int:
        self._authorize(granted_by)
        quantity = await self._inventory.award(user_id, item_kind, amount)
        await self._audit(
            "grant_items",
            {"user_id": user_id, "item_kind": item_kind, "amount": amount, "granted_by": granted_by},
        )
        await self._events.publish(
            "admin.items.granted",
            {"user_id": user_id, "item_kind": item_kind, "amount": amount},
        )
        return quantity

    async def protect(
        self, user_id: int, *, granted_by: int | None = None, duration_ms: int | None = None
    ) -> Protection:
        self._authorize(granted_by)
        protection = self._protections.activate(user_id, granted_by, duration_ms)
        await self._audit(
            "protect",
            {
                "user_id": user_id,
                "granted_by": granted_by,
                "expires_at": protection.expires_at.isoformat(),
            },
        )
        await self._events.publish("admin.user.protected", {"user_id": user_id})
        return protection

    async def unprotect(self, user_id: int, *, revoked_by: int | None = None) -> bool:
        self._authorize(revoked_by)
        removed = self._protections.deactivate(user_id)
        await self._audit(
            "unprotect", {"user_id": user_id, "revoked_by": revoked_by, "removed": removed}
        )
        await self._events.publish("admin.user.unprotected", {"user_id": user_id})
        return removed

    async def cancel_plot(
        self, arena_id: int, *, cancelled_by: int | None = None, refund: bool = True
    ) -> Attempt | None:
        self._authorize(cancelled_by)
        attempt = await self._plots.withdraw(arena_id, refund=refund)
        await self._audit(
            "cancel_plot",
            {
                "arena_id": arena_id,
                "cancelled_by": cancelled_by,
                "refund": refund,
                "initiator_id": attempt.initiator_id if attempt else None,
            },
        )
        await self._events.publish(
            "admin.plot.cancelled", {"arena_id": arena_id, "found": attempt is not None}
        )
        return attempt

    def _authorize(self, actor_id: int | None) -> None:
        if not self.is_admin(actor_id):
            raise NotAuthorized(actor_id)

    async def _audit(self, action: str, payload: dict) -> None:
        if not self._audit_enabled:
            return
        await self._audit_store.add_entry(
            action,
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                **payload,
            },
        )


def build_admin_service(app) -> AdminService:
    return AdminService(
        ledger=app.ledger,
        inventory=app.inventory,
        plots=app.plots,
        protections=app.protections,
        audit_store=app.audit_store,
        event_bus=app.event_bus,
        admin_ids=app.config.admin.admin_ids,
        enable_audit_logs=app.config.admin.enable_audit_logs,
    )
