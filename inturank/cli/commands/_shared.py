"""Helpers shared by the CLI commands: notifier construction and output."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from inturank.config import config
from inturank.core.notifier import Notifier
from inturank.models.messages import DeliveryResult, DeliveryStatus, DispatchOutcome
from inturank.routing.gateways.outbox import OutboxGateway

console = Console()

_OUTCOME_STYLE = {
    DispatchOutcome.DELIVERED: "green",
    DispatchOutcome.QUEUED: "cyan",
    DispatchOutcome.UNSUBSCRIBED: "yellow",
    DispatchOutcome.DUPLICATE: "dim",
    DispatchOutcome.STALE: "dim",
}


def open_notifier(store: Path | None, *, dry_run: bool = False) -> Notifier:
    """Build a ``Notifier`` from the global config.

    *store* overrides ``config.store_path``.  With *dry_run* messages go to
    an ``OutboxGateway`` instead of the email relay.
    """
    settings = config if store is None else config.model_copy(update={"store_path": store})
    gateway = OutboxGateway() if dry_run else None
    return Notifier(settings, gateway=gateway)


def outcome_text(outcome: DispatchOutcome) -> str:
    style = _OUTCOME_STYLE[outcome]
    return f"[{style}]{outcome.value}[/{style}]"


def print_delivery(label: str, result: DeliveryResult | None) -> None:
    """One line describing what happened to a send."""
    if result is None:
        console.print(f"[dim]{label}: nothing to send.[/dim]")
    elif result.status == DeliveryStatus.NOT_CONFIGURED:
        console.print(f"[yellow]{label}: email not configured.[/yellow]")
    elif result.status == DeliveryStatus.FAILED:
        console.print(f"[red]{label} failed:[/red] {result.detail}")
    else:
        console.print(f"[green]{label}: {result.status.value}.[/green]")


def print_outbox(notifier: Notifier) -> None:
    """Show messages held by a dry-run outbox gateway."""
    if not isinstance(notifier.gateway, OutboxGateway):
        return
    messages = notifier.gateway.flush()
    if not messages:
        console.print("[dim]Outbox is empty.[/dim]")
        return
    table = Table(title="Outbox (dry run)")
    table.add_column("To", style="cyan")
    table.add_column("Subject")
    table.add_column("Kind", style="dim")
    for message in messages:
        table.add_row(message.to, message.subject, message.headers.get("X-IntuRank-Kind", ""))
    console.print(table)
