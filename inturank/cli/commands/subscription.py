"""``inturank subscribe | unsubscribe | frequency | status``.

Manage an owner's email subscription and inspect its notification state.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from inturank.cli.commands._shared import console, open_notifier, print_delivery, print_outbox
from inturank.models.activity import NotificationClass
from inturank.models.messages import DeliveryStatus
from inturank.models.subscriptions import DigestFrequency


def subscribe_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    email: str = typer.Argument(..., help="Address to send alerts to."),
    nickname: str = typer.Option(None, "--nickname", "-n", help="How to greet the owner."),
    frequency: DigestFrequency = typer.Option(
        None, "--frequency", "-f", help="immediate or daily (keeps the current one if omitted)."
    ),
    welcome: bool = typer.Option(True, "--welcome/--no-welcome", help="Send the welcome email."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Hold emails in an outbox instead of sending."),
) -> None:
    """Subscribe an owner to email alerts (or update the subscription)."""
    if "@" not in email:
        console.print(f"[red]Not an email address:[/red] {email}")
        raise typer.Exit(code=1)

    notifier = open_notifier(store, dry_run=dry_run)
    try:
        subscription = notifier.dispatcher.subscribe(
            owner, email, nickname, frequency, send_welcome=welcome
        )
        console.print(
            f"[bold green]Subscribed[/bold green] {owner} -> {subscription.email} "
            f"([cyan]{subscription.frequency.value}[/cyan])"
        )
        for failure in notifier.failures:
            print_delivery("Welcome email", failure.result)
        print_outbox(notifier)
    finally:
        notifier.close()


def unsubscribe_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
) -> None:
    """Stop all email alerts for an owner."""
    notifier = open_notifier(store)
    try:
        if notifier.subscriptions.get(owner) is None:
            console.print(f"[dim]{owner} is not subscribed.[/dim]")
            return
        notifier.dispatcher.unsubscribe(owner)
        console.print(f"[bold]Unsubscribed[/bold] {owner}.")
    finally:
        notifier.close()


def frequency_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    frequency: DigestFrequency = typer.Argument(..., help="immediate or daily."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Hold emails in an outbox instead of sending."),
) -> None:
    """Switch between immediate emails and a daily digest."""
    notifier = open_notifier(store, dry_run=dry_run)
    try:
        updated = notifier.dispatcher.set_frequency(owner, frequency)
        if updated is None:
            console.print(f"[red]{owner} is not subscribed.[/red]")
            raise typer.Exit(code=1)
        console.print(f"Frequency for {owner}: [cyan]{updated.frequency.value}[/cyan]")
        for failure in notifier.failures:
            print_delivery("Pending digest", failure.result)
        print_outbox(notifier)
    finally:
        notifier.close()


def status_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
) -> None:
    """Show an owner's subscription, digest queue, and dedup state."""
    notifier = open_notifier(store)
    try:
        subscription = notifier.subscriptions.get(owner)
        last_sent = notifier.digest_queue.get_last_sent_at(owner)
        lines = [f"[bold]Owner:[/bold]            {owner}"]
        if subscription is None:
            lines.append("[bold]Subscription:[/bold]     [yellow]none[/yellow]")
        else:
            lines += [
                f"[bold]Email:[/bold]            {subscription.email}",
                f"[bold]Nickname:[/bold]         {subscription.nickname or '-'}",
                f"[bold]Frequency:[/bold]        {subscription.frequency.value}",
                f"[bold]Subscribed at:[/bold]    {subscription.subscribed_at:%Y-%m-%d %H:%M UTC}",
            ]
        lines += [
            f"[bold]Digest queue:[/bold]     {notifier.digest_queue.size(owner)} item(s)",
            "[bold]Last digest:[/bold]      "
            + ("never" if last_sent.timestamp() == 0 else f"{last_sent:%Y-%m-%d %H:%M UTC}"),
            f"[bold]Follows:[/bold]          {len(notifier.follows.list(owner))}",
        ]
        for notification_class in NotificationClass:
            size = notifier.ledger.size(owner, notification_class)
            lines.append(f"[bold]Seen {notification_class.value}:[/bold] {size}")
        if not notifier.config.email_endpoint:
            lines += ["", f"[dim]Email relay: {DeliveryStatus.NOT_CONFIGURED.value}[/dim]"]

        console.print(
            Panel(
                "\n".join(lines),
                title="[bold]IntuRank alerts[/bold]",
                border_style="green" if subscription else "yellow",
                padding=(1, 2),
            )
        )
    finally:
        notifier.close()
