"""Main Typer application — imports and registers all CLI commands.

Entry point: ``inturank`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from inturank.cli.commands.follows import alerts_cmd, follow_cmd, follows_cmd, unfollow_cmd
from inturank.cli.commands.poll import flush_digest_cmd, poll_cmd
from inturank.cli.commands.receipt import receipt_cmd
from inturank.cli.commands.subscription import (
    frequency_cmd,
    status_cmd,
    subscribe_cmd,
    unsubscribe_cmd,
)
from inturank.config import config

app = typer.Typer(
    name="inturank",
    help="IntuRank email alerts: subscriptions, follows, activity polling and digests.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="subscribe", help="Subscribe an owner to email alerts.")(subscribe_cmd)
app.command(name="unsubscribe", help="Stop all email alerts for an owner.")(unsubscribe_cmd)
app.command(name="frequency", help="Switch between immediate emails and a daily digest.")(frequency_cmd)
app.command(name="status", help="Show an owner's notification state.")(status_cmd)
app.command(name="follow", help="Follow an identity.")(follow_cmd)
app.command(name="unfollow", help="Stop following an identity.")(unfollow_cmd)
app.command(name="follows", help="List followed identities.")(follows_cmd)
app.command(name="alerts", help="Turn email alerts on or off for a follow.")(alerts_cmd)
app.command(name="poll", help="Poll an activity snapshot and dispatch notifications.")(poll_cmd)
app.command(name="flush-digest", help="Send the daily digest if it is due.")(flush_digest_cmd)
app.command(name="receipt", help="Email a receipt for the owner's own trade.")(receipt_cmd)


def configure_logging(level: str) -> None:
    """Route log records through Rich at *level* (e.g. ``"INFO"``)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def main() -> None:
    """CLI entry point."""
    configure_logging(config.log_level)
    app()


if __name__ == "__main__":
    main()
