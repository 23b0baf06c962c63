"""Top level application object for Kingmaker engines."""

from __future__ import annotations

from typing import Any

from .clock import AsyncioScheduler, Clock, Scheduler, SystemClock
from .config import KingmakerConfig
from .domain.attacks import AttackMemory
from .domain.attempts import AttemptRegistry
from .domain.events import EventBus
from .domain.inventory import InventoryService
from .domain.ledger import Ledger
from .domain.plots import PlotService
from .domain.protection import ProtectionRegistry
from .domain.strikes import StrikeService
from .storage.base import AuditStore, ItemStore, TransactionStore
from .storage.memory import InMemoryAuditStore, InMemoryItemStore, InMemoryTransactionStore
from .storage.sqlalchemy import AsyncSQLAlchemyStorage


class EngineApp:
    """Central dependency container used by command handlers and tools.

    Build one per process (or one per test); every registry lives on the
    instance, so two apps never share state.
    """

    def __init__(
        self,
        config: KingmakerConfig,
        *,
        transaction_store: TransactionStore | None = None,
        item_store: ItemStore | None = None,
        audit_store: AuditStore | None = None,
        event_bus: EventBus | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or AsyncioScheduler()

        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        (
            self.transaction_store,
            self.item_store,
            self.audit_store,
        ) = self._wire_storage(transaction_store, item_store, audit_store)

        self.ledger = Ledger(self.transaction_store, clock=self.clock)
        self.inventory = InventoryService(
            self.item_store, item_kinds=self.config.inventory.item_kinds
        )
        self.attacks = AttackMemory(
            self.scheduler,
            ledger=self.ledger,
            clock=self.clock,
            default_window_ms=self.config.strikes.attack_window_ms,
        )
        self.attempts = AttemptRegistry(self.ledger, self.scheduler, clock=self.clock)
        self.protections = ProtectionRegistry(
            clock=self.clock, default_duration_ms=self.config.protection.duration_ms
        )
        self.plots = PlotService(
            self.attempts, self.ledger, self.inventory, self.event_bus, self.config.plot
        )
        self.strikes = StrikeService(
            self.ledger,
            self.inventory,
            self.attacks,
            self.protections,
            self.event_bus,
            self.config.strikes,
        )

    def _wire_storage(
        self,
        transaction_store: TransactionStore | None,
        item_store: ItemStore | None,
        audit_store: AuditStore | None,
    ) -> tuple[TransactionStore, ItemStore, AuditStore]:
        if transaction_store and item_store and audit_store:
            return transaction_store, item_store, audit_store

        backend = self.config.storage.backend
        if backend == "memory":
            return (
                transaction_store or InMemoryTransactionStore(),
                item_store or InMemoryItemStore(),
                audit_store or InMemoryAuditStore(),
            )
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            storage = AsyncSQLAlchemyStorage(dsn, echo=self.config.storage.echo_sql)
            self._sqlalchemy_storage = storage
            return (
                transaction_store or storage.transaction_store(),
                item_store or storage.item_store(),
                audit_store or storage.audit_store(),
            )
        raise ValueError(f"Unsupported storage backend {backend}")

    def snapshot(self) -> dict[str, Any]:
        """Export current runtime state for debugging."""
        return {
            "storage": self.config.storage.backend,
            "active_arenas": self.attempts.active_arenas(),
            "pending_attacks": len(self.attacks),
            "item_kinds": list(self.config.inventory.item_kinds),
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.init_models()

    async def close(self) -> None:
        if isinstance(self.scheduler, AsyncioScheduler):
            await self.scheduler.shutdown()
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()
