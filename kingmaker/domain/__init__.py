"""Domain models and services."""

from .attacks import AttackMemory, AttackRecord
from .attempts import Attempt, AttemptRegistry, AttemptStatus, BlockOutcome
from .events import EventBus
from .inventory import InventoryService
from .ledger import Ledger
from .plots import PlotService
from .protection import Protection, ProtectionRegistry
from .strikes import StrikeOutcome, StrikeService
from .exceptions import (
    AlreadyActive,
    AlreadyBlocked,
    AlreadyExpired,
    AttackNotFound,
    ConflictError,
    InsufficientFunds,
    InsufficientItems,
    InsufficientResourceError,
    InvalidAmount,
    InvalidItemKind,
    KingmakerError,
    NoActiveAttempt,
    NotAuthorized,
    NotFoundError,
    NothingToTake,
    TargetProtected,
    ValidationError,
)

__all__ = [
    "AttackMemory",
    "AttackRecord",
    "Attempt",
    "AttemptRegistry",
    "AttemptStatus",
    "BlockOutcome",
    "EventBus",
    "InventoryService",
    "Ledger",
    "PlotService",
    "Protection",
    "ProtectionRegistry",
    "StrikeOutcome",
    "StrikeService",
    "AlreadyActive",
    "AlreadyBlocked",
    "AlreadyExpired",
    "AttackNotFound",
    "ConflictError",
    "InsufficientFunds",
    "InsufficientItems",
    "InsufficientResourceError",
    "InvalidAmount",
    "InvalidItemKind",
    "KingmakerError",
    "NoActiveAttempt",
    "NotAuthorized",
    "NotFoundError",
    "NothingToTake",
    "TargetProtected",
    "ValidationError",
]
