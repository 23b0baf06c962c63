"""Storage backends for Kingmaker."""

from .base import (
    AuditStore,
    InventoryEntry,
    ItemStore,
    Transaction,
    TransactionKind,
    TransactionStore,
)
from .memory import InMemoryAuditStore, InMemoryItemStore, InMemoryTransactionStore
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "AuditStore",
    "InventoryEntry",
    "ItemStore",
    "Transaction",
    "TransactionKind",
    "TransactionStore",
    "InMemoryAuditStore",
    "InMemoryItemStore",
    "InMemoryTransactionStore",
    "AsyncSQLAlchemyStorage",
]
