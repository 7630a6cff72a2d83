"""``inturank poll | flush-digest`` — run the notification loop.

``poll`` reads events from a JSON snapshot (see ``JsonSnapshotSource``)
and runs one cycle, or keeps polling with ``--watch``.  The first cycle of
a session only records what is already there when the store has no
holdings events for the owner yet; later runs send what is new.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from inturank.cli.commands._shared import (
    console,
    open_notifier,
    outcome_text,
    print_delivery,
    print_outbox,
)
from inturank.core.poller import PollReport
from inturank.models.messages import DispatchOutcome
from inturank.sources import JsonSnapshotSource


def _print_report(index: int, report: PollReport) -> None:
    table = Table(title=f"Poll cycle {index}" + (" (baseline)" if report.baseline else ""))
    table.add_column("Outcome")
    table.add_column("Events", justify="right")
    if report.baseline:
        table.add_row("[dim]seeded[/dim]", str(report.seeded))
    for outcome in DispatchOutcome:
        if report.count(outcome):
            table.add_row(outcome_text(outcome), str(report.count(outcome)))
    console.print(table)
    if report.error:
        console.print(f"[red]Cycle stopped early:[/red] {report.error}")


def poll_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    snapshot: Path = typer.Argument(..., help="JSON snapshot with positions and activity."),
    baseline: bool = typer.Option(
        True, "--baseline/--no-baseline", help="Record the first cycle's events without sending."
    ),
    watch: bool = typer.Option(False, "--watch", help="Keep polling at the configured interval."),
    cycles: int = typer.Option(None, "--cycles", help="Stop after this many cycles when watching."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Hold emails in an outbox instead of sending."),
) -> None:
    """Poll an activity snapshot and dispatch notifications."""
    if not snapshot.exists():
        console.print(f"[red]Snapshot not found:[/red] {snapshot}")
        raise typer.Exit(code=1)

    notifier = open_notifier(store, dry_run=dry_run)
    try:
        poller = notifier.poller(JsonSnapshotSource(snapshot), baseline_first_cycle=baseline)
        if watch:
            reports = poller.run(
                owner, notifier.config.poll_interval_seconds, max_cycles=cycles
            )
        else:
            print_delivery("Digest", poller.start_session(owner))
            reports = [poller.run_cycle(owner)]

        for index, report in enumerate(reports, start=1):
            _print_report(index, report)
        if notifier.failures:
            console.print(f"[yellow]{len(notifier.failures)} email(s) not delivered.[/yellow]")
        print_outbox(notifier)
        if any(not report.ok for report in reports):
            raise typer.Exit(code=1)
    finally:
        notifier.close()


def flush_digest_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Hold emails in an outbox instead of sending."),
) -> None:
    """Send the owner's daily digest if it is due."""
    notifier = open_notifier(store, dry_run=dry_run)
    try:
        print_delivery("Digest", notifier.dispatcher.flush_digest(owner))
        print_outbox(notifier)
    finally:
        notifier.close()
