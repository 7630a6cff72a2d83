"""``inturank receipt`` — email a receipt for the owner's own trade."""

from __future__ import annotations

from pathlib import Path

import typer

from inturank.cli.commands._shared import console, open_notifier, outcome_text, print_outbox
from inturank.models.activity import ActivityKind, PositionSide, TransactionReceipt
from inturank.routing.formatting import format_assets, format_displayed_shares


def receipt_cmd(
    owner: str = typer.Argument(..., help="Wallet address of the owner."),
    tx_hash: str = typer.Option(..., "--tx", help="Transaction hash."),
    market: str = typer.Option(..., "--market", "-m", help="Market label."),
    shares: str = typer.Option(..., "--shares", help="Shares traded, in wei."),
    assets: str = typer.Option(None, "--assets", help="Amount paid or received, in wei."),
    kind: ActivityKind = typer.Option(ActivityKind.ACQUIRED, "--type", help="acquired or liquidated."),
    side: PositionSide = typer.Option(PositionSide.TRUST, "--side", help="trust or distrust."),
    store: Path = typer.Option(None, "--store", help="Path to the state database."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Hold emails in an outbox instead of sending."),
) -> None:
    """Send (or queue for the digest) a receipt for a completed trade."""
    receipt = TransactionReceipt(
        tx_hash=tx_hash,
        type=kind,
        side=side,
        market_label=market,
        shares_formatted=format_displayed_shares(shares),
        assets_formatted=format_assets(assets),
    )

    notifier = open_notifier(store, dry_run=dry_run)
    try:
        outcome = notifier.dispatcher.notify_receipt(owner, receipt)
        console.print(f"Receipt for {tx_hash}: {outcome_text(outcome)}")
        for failure in notifier.failures:
            console.print(f"[yellow]Not delivered:[/yellow] {failure.result.detail}")
        print_outbox(notifier)
    finally:
        notifier.close()
