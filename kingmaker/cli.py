"""Command line helpers for Kingmaker."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .admin.service import build_admin_service
from .app import EngineApp
from .config import KingmakerConfig
from .diagnostics.checklist import run_checklist as checklist_run

console = Console()


def run_ledger() -> None:
    parser = argparse.ArgumentParser(description="Kingmaker ledger viewer")
    parser.add_argument("subject", type=int, help="User id to inspect")
    parser.add_argument("--limit", type=int, default=10, help="Number of transactions to show")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    _configure_logging(args.verbose)
    asyncio.run(_show_ledger(args.subject, args.limit))


def run_grant() -> None:
    parser = argparse.ArgumentParser(description="Kingmaker point grant")
    parser.add_argument("subject", type=int, help="User id to credit (or fine)")
    parser.add_argument("amount", type=int, help="Signed amount of points")
    parser.add_argument("--reason", default=None, help="Reason stored with the transaction")
    parser.add_argument("--by", type=int, default=None, help="Admin user id")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    _configure_logging(args.verbose)
    asyncio.run(_grant(args.subject, args.amount, args.reason, args.by))


def run_checklist() -> None:
    parser = argparse.ArgumentParser(description="Kingmaker sanity checks")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    _configure_logging(args.verbose)

    issues = asyncio.run(_checklist())
    if not issues:
        console.print("[bold green]No issues found.[/bold green]")
        return
    for issue in issues:
        style = "red" if issue.severity == "error" else "yellow"
        console.print(f"[{style}][{issue.severity.upper()}][/{style}] {issue.message}")
    if any(issue.severity == "error" for issue in issues):
        sys.exit(1)


async def _show_ledger(subject_id: int, limit: int) -> None:
    app = await _open_app()
    try:
        balance = await app.ledger.balance(subject_id)
        history = await app.ledger.history(subject_id, limit)
        holdings = await app.inventory.holdings(subject_id)
    finally:
        await app.close()

    console.print(f"[bold]User {subject_id}[/bold]: {balance} points")
    if holdings:
        console.print(
            "Items: " + ", ".join(f"{kind} x{qty}" for kind, qty in sorted(holdings.items()))
        )
    table = Table("id", "when", "amount", "kind", "counterparty", "reason")
    for tx in history:
        table.add_row(
            str(tx.id),
            tx.timestamp.isoformat(timespec="seconds"),
            f"{tx.amount:+d}",
            tx.kind.value,
            "" if tx.counterparty_id is None else str(tx.counterparty_id),
            tx.reason or "",
        )
    console.print(table)


async def _grant(subject_id: int, amount: int, reason: str | None, granted_by: int | None) -> None:
    app = await _open_app()
    try:
        transaction = await build_admin_service(app).grant_points(
            subject_id, amount, granted_by=granted_by, reason=reason
        )
        balance = await app.ledger.balance(subject_id)
    finally:
        await app.close()
    console.print(
        f"Recorded transaction {transaction.id}: {amount:+d} for {subject_id}, balance {balance}."
    )


async def _checklist():
    app = await _open_app()
    try:
        return await checklist_run(app)
    finally:
        await app.close()


async def _open_app() -> EngineApp:
    app = EngineApp(KingmakerConfig.from_env())
    await app.init_backend()
    return app


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
