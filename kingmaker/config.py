"""Configuration models for Kingmaker."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Literal, Mapping, Sequence


StorageBackend = Literal["memory", "sqlalchemy"]

_TRUTHY = {"1", "true", "yes"}


@dataclass(slots=True)
class StorageConfig:
    """Configure where the ledger, inventory and audit log are persisted."""

    backend: StorageBackend = "memory"
    dsn: str | None = None
    echo_sql: bool = False

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./kingmaker.db"
        return None


@dataclass(slots=True)
class AdminConfig:
    """Feature switches for admin tooling."""

    admin_ids: set[int] = field(default_factory=set)
    enable_audit_logs: bool = True


@dataclass(slots=True)
class PlotConfig:
    """Cost, window and rewards of timed plots against a target."""

    cost: int = 100
    window_ms: int = 60_000
    defender_reward: int = 25
    defender_items: Mapping[str, int] = field(default_factory=dict)
    block_item: str | None = "kill_shield"


@dataclass(slots=True)
class StrikeConfig:
    """Item attacks and the shield counter-defense."""

    damage: Mapping[str, int] = field(default_factory=lambda: {"bomb": 5, "dynamite": 10})
    shield_item: str = "shield"
    attack_window_ms: int = 120_000


@dataclass(slots=True)
class InventoryConfig:
    """Item kinds accepted by the inventory; empty means any non-empty kind."""

    item_kinds: Sequence[str] = field(
        default_factory=lambda: ("bomb", "dynamite", "shield", "kill_shield")
    )


@dataclass(slots=True)
class ProtectionConfig:
    duration_ms: int = 24 * 60 * 60 * 1000


@dataclass(slots=True)
class KingmakerConfig:
    """Top-level configuration container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    plot: PlotConfig = field(default_factory=PlotConfig)
    strikes: StrikeConfig = field(default_factory=StrikeConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    protection: ProtectionConfig = field(default_factory=ProtectionConfig)

    @classmethod
    def from_env(cls) -> "KingmakerConfig":
        """Create config from environment variables prefixed with KINGMAKER_."""
        prefix = "KINGMAKER_"
        defaults = cls()

        admin_ids = {
            int(_id.strip())
            for _id in os.getenv(f"{prefix}ADMIN_IDS", "").split(",")
            if _id.strip()
        }

        storage = StorageConfig(
            backend=os.getenv(f"{prefix}STORAGE_BACKEND", "memory"),  # type: ignore[arg-type]
            dsn=os.getenv(f"{prefix}STORAGE_DSN"),
            echo_sql=os.getenv(f"{prefix}STORAGE_ECHO_SQL", "false").lower() in _TRUTHY,
        )

        admin = AdminConfig(
            admin_ids=admin_ids,
            enable_audit_logs=os.getenv(f"{prefix}ADMIN_ENABLE_AUDIT_LOGS", "true").lower()
            in _TRUTHY,
        )

        plot = PlotConfig(
            cost=int(os.getenv(f"{prefix}PLOT_COST", str(defaults.plot.cost))),
            window_ms=int(os.getenv(f"{prefix}PLOT_WINDOW_MS", str(defaults.plot.window_ms))),
            defender_reward=int(
                os.getenv(f"{prefix}PLOT_DEFENDER_REWARD", str(defaults.plot.defender_reward))
            ),
            defender_items=_parse_int_mapping(
                os.getenv(f"{prefix}PLOT_DEFENDER_ITEMS"), f"{prefix}PLOT_DEFENDER_ITEMS"
            ),
            block_item=os.getenv(f"{prefix}PLOT_BLOCK_ITEM", defaults.plot.block_item or "")
            or None,
        )

        damage = _parse_int_mapping(
            os.getenv(f"{prefix}STRIKE_DAMAGE"), f"{prefix}STRIKE_DAMAGE"
        )
        strikes = StrikeConfig(
            damage=damage or dict(defaults.strikes.damage),
            shield_item=os.getenv(f"{prefix}STRIKE_SHIELD_ITEM", "shield") or "shield",
            attack_window_ms=int(
                os.getenv(
                    f"{prefix}STRIKE_WINDOW_MS", str(defaults.strikes.attack_window_ms)
                )
            ),
        )

        raw_kinds = os.getenv(f"{prefix}ITEM_KINDS")
        inventory = InventoryConfig(
            item_kinds=(
                tuple(kind.strip() for kind in raw_kinds.split(",") if kind.strip())
                if raw_kinds is not None
                else defaults.inventory.item_kinds
            )
        )

        protection = ProtectionConfig(
            duration_ms=int(
                os.getenv(
                    f"{prefix}PROTECTION_DURATION_MS", str(defaults.protection.duration_ms)
                )
            )
        )

        return cls(
            storage=storage,
            admin=admin,
            plot=plot,
            strikes=strikes,
            inventory=inventory,
            protection=protection,
        )


def _parse_int_mapping(raw: str | None, name: str) -> Mapping[str, int]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON for {name}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a JSON object")
    return {str(k): int(v) for k, v in data.items()}
