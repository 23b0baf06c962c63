"""Exceptions raised by Kingmaker domain services."""


class KingmakerError(RuntimeError):
    """Base class for domain exceptions."""


class ValidationError(KingmakerError):
    """Raised when an argument is outside the accepted domain."""


class InvalidAmount(ValidationError):
    """Raised for zero, negative or otherwise unusable amounts."""


class InvalidItemKind(ValidationError):
    """Raised when an item kind is empty or not configured."""

    def __init__(self, item_kind: str) -> None:
        super().__init__(f"Unknown item kind {item_kind!r}")
        self.item_kind = item_kind


class ConflictError(KingmakerError):
    """Raised when the current state does not allow the operation."""


class AlreadyActive(ConflictError):
    """Raised when an arena already holds an active attempt."""

    def __init__(self, arena_id: int) -> None:
        super().__init__(f"Arena {arena_id} already has an active attempt")
        self.arena_id = arena_id


class AlreadyBlocked(ConflictError):
    """Raised when a defender blocks the same attempt twice."""

    def __init__(self, arena_id: int, defender_id: int) -> None:
        super().__init__(f"Defender {defender_id} already blocked the attempt in arena {arena_id}")
        self.arena_id = arena_id
        self.defender_id = defender_id


class AlreadyExpired(ConflictError):
    """Raised when a block arrives after the window has elapsed."""

    def __init__(self, arena_id: int, elapsed_ms: int) -> None:
        super().__init__(f"Window for arena {arena_id} elapsed {elapsed_ms} ms ago or more")
        self.arena_id = arena_id
        self.elapsed_ms = elapsed_ms


class TargetProtected(ConflictError):
    """Raised when striking a user under active protection."""

    def __init__(self, target_id: int, remaining_ms: int) -> None:
        super().__init__(f"User {target_id} is protected for another {remaining_ms} ms")
        self.target_id = target_id
        self.remaining_ms = remaining_ms


class NotFoundError(KingmakerError):
    """Raised when the requested record does not exist."""


class NoActiveAttempt(NotFoundError):
    def __init__(self, arena_id: int) -> None:
        super().__init__(f"No active attempt in arena {arena_id}")
        self.arena_id = arena_id


class AttackNotFound(NotFoundError):
    def __init__(self, target_id: int) -> None:
        super().__init__(f"No recent attack on user {target_id}")
        self.target_id = target_id


class InsufficientResourceError(KingmakerError):
    """Raised when a balance or stock cannot cover the request."""

    def __init__(self, message: str, *, have: int, need: int) -> None:
        super().__init__(message)
        self.have = have
        self.need = need


class InsufficientFunds(InsufficientResourceError):
    def __init__(self, subject_id: int, *, have: int, need: int) -> None:
        super().__init__(
            f"Insufficient points for {subject_id}: have {have}, need {need}", have=have, need=need
        )
        self.subject_id = subject_id


class InsufficientItems(InsufficientResourceError):
    def __init__(self, owner_id: int, item_kind: str, *, have: int, need: int) -> None:
        super().__init__(
            f"Insufficient {item_kind} for {owner_id}: have {have}, need {need}",
            have=have,
            need=need,
        )
        self.owner_id = owner_id
        self.item_kind = item_kind


class NothingToTake(InsufficientResourceError):
    """Raised when a strike target has no points left."""

    def __init__(self, target_id: int) -> None:
        super().__init__(f"User {target_id} has no points to take", have=0, need=1)
        self.target_id = target_id


class NotAuthorized(KingmakerError):
    """Raised when an admin action comes from a user outside the admin list."""

    def __init__(self, actor_id: int | None) -> None:
        super().__init__(f"User {actor_id} is not allowed to perform admin actions")
        self.actor_id = actor_id
