"""``inturank follow | unfollow | follows | alerts`` — manage followed identities."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from inturank.cli.commands._shared import console, open_notifier


def follow_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    identity: str = typer.Argument(..., help="Identity (address) to follow."),
    label: str = typer.Option(None, "--label", "-l", help="Display name used in alerts."),
    alerts: bool = typer.Option(True, "--alerts/--no-alerts", help="Email when this identity trades."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
) -> None:
    """Follow an identity."""
    notifier = open_notifier(store)
    try:
        entry = notifier.follows.follow(owner, identity, label, email_alerts=alerts)
        if entry is None:
            console.print("[red]Cannot follow yourself or an empty identity.[/red]")
            raise typer.Exit(code=1)
        state = "[green]on[/green]" if entry.email_alerts else "[dim]off[/dim]"
        console.print(f"Following {entry.label or entry.followed_id} (email alerts {state}).")
    finally:
        notifier.close()


def unfollow_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    identity: str = typer.Argument(..., help="Identity to stop following."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
) -> None:
    """Stop following an identity."""
    notifier = open_notifier(store)
    try:
        if notifier.follows.is_following(owner, identity) is None:
            console.print(f"[dim]Not following {identity}.[/dim]")
            return
        notifier.follows.unfollow(owner, identity)
        console.print(f"Unfollowed {identity}.")
    finally:
        notifier.close()


def follows_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
) -> None:
    """List the identities an owner follows."""
    notifier = open_notifier(store)
    try:
        entries = notifier.follows.list(owner)
        if not entries:
            console.print("[dim]Not following anyone.[/dim]")
            return

        table = Table(title=f"Follows for {owner}")
        table.add_column("Identity", style="cyan")
        table.add_column("Label")
        table.add_column("Email alerts", justify="center")
        table.add_column("Since", style="dim")
        for entry in entries:
            alerts = "[green]Yes[/green]" if entry.email_alerts else "[yellow]No[/yellow]"
            table.add_row(
                entry.followed_id,
                entry.label or "-",
                alerts,
                f"{entry.followed_at:%Y-%m-%d}",
            )
        console.print(table)
    finally:
        notifier.close()


def alerts_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    identity: str = typer.Argument(..., help="A followed identity."),
    enabled: bool = typer.Option(..., "--on/--off", help="Turn email alerts on or off."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
) -> None:
    """Turn email alerts on or off for one followed identity."""
    notifier = open_notifier(store)
    try:
        entry = notifier.follows.set_email_alerts(owner, identity, enabled)
        if entry is None:
            console.print(f"[red]Not following {identity}.[/red]")
            raise typer.Exit(code=1)
        state = "on" if entry.email_alerts else "off"
        console.print(f"Email alerts for {entry.label or entry.followed_id}: {state}.")
    finally:
        notifier.close()
