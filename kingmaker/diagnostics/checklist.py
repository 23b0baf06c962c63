"""Automated checks that highlight ledger and configuration problems."""

from __future__ import annotations

from dataclasses import dataclass

from ..app import EngineApp


@dataclass(slots=True)
class ChecklistIssue:
    severity: str
    message: str


async def run_checklist(app: EngineApp) -> list[ChecklistIssue]:
    issues: list[ChecklistIssue] = []

    for subject_id in await app.ledger.reconcile():
        issues.append(
            ChecklistIssue("error", f"Cached balance of {subject_id} disagrees with the ledger.")
        )
    for subject_id in await app.transaction_store.subjects():
        balance = await app.ledger.balance(subject_id, recompute=True)
        if balance < 0:
            issues.append(ChecklistIssue("warning", f"{subject_id} has a negative balance ({balance})."))

    for entry in await app.item_store.entries():
        if entry.quantity < 0:
            issues.append(
                ChecklistIssue(
                    "error",
                    f"{entry.owner_id} holds {entry.quantity} {entry.item_kind}; quantities cannot be negative.",
                )
            )
        if not app.inventory.is_known(entry.item_kind):
            issues.append(
                ChecklistIssue(
                    "warning", f"{entry.owner_id} holds unconfigured item '{entry.item_kind}'."
                )
            )

    plot = app.config.plot
    if plot.window_ms <= 0:
        issues.append(ChecklistIssue("error", "Plot window must be positive."))
    if plot.cost < 0:
        issues.append(ChecklistIssue("error", "Plot cost cannot be negative."))
    if plot.defender_reward < 0:
        issues.append(ChecklistIssue("error", "Defender reward cannot be negative."))
    elif plot.defender_reward > plot.cost:
        issues.append(
            ChecklistIssue(
                "warning",
                "Defender reward exceeds plot cost; blocking plots mints points.",
            )
        )
    for item_kind in plot.defender_items:
        if not app.inventory.is_known(item_kind):
            issues.append(
                ChecklistIssue("error", f"Defender reward item '{item_kind}' is not configured.")
            )
    if plot.block_item and not app.inventory.is_known(plot.block_item):
        issues.append(
            ChecklistIssue("error", f"Plot block item '{plot.block_item}' is not configured.")
        )

    strikes = app.config.strikes
    if strikes.attack_window_ms <= 0:
        issues.append(ChecklistIssue("error", "Attack window must be positive."))
    if not app.inventory.is_known(strikes.shield_item):
        issues.append(
            ChecklistIssue("error", f"Shield item '{strikes.shield_item}' is not configured.")
        )
    for item_kind, damage in strikes.damage.items():
        if damage <= 0:
            issues.append(ChecklistIssue("error", f"Strike item '{item_kind}' has no damage."))
        if not app.inventory.is_known(item_kind):
            issues.append(
                ChecklistIssue("error", f"Strike item '{item_kind}' is not configured.")
            )

    return issues
