"""Smoke test — exercises the notification flow end to end, offline.

Uses an in-memory store and the outbox gateway, so nothing is persisted
and no email leaves the machine.

Usage:
    python demo_prod.py
"""

from __future__ import annotations

from datetime import datetime, timezone

from inturank import __version__
from inturank.config import config
from inturank.core.kv_store import InMemoryStore
from inturank.core.notifier import Notifier
from inturank.models import ActivityEvent, DigestFrequency, PositionSide, TransactionReceipt
from inturank.routing.gateways.outbox import OutboxGateway

OWNER = "0xa11ce00000000000000000000000000000000001"


def main() -> None:
    """Run the smoke test."""
    print(f"IntuRank notify v{__version__}")
    print(f"Environment: {config.environment} | Relay: {config.email_endpoint or 'not configured'}")
    print()

    outbox = OutboxGateway()
    notifier = Notifier(config, store=InMemoryStore(), gateway=outbox)
    dispatcher = notifier.dispatcher

    dispatcher.subscribe(OWNER, "smoke@example.com", nickname="Smoke")
    event = ActivityEvent(
        id="smoke-1",
        type="acquired",
        market_label="Smoke Market",
        sender_id="0xb0b",
        shares="1000000000000000000",
        assets="250000000000000000",
        timestamp=datetime.now(timezone.utc),
    )
    print(f"holdings activity: {dispatcher.notify_holdings_activity(OWNER, event).value}")
    print(f"same event again:  {dispatcher.notify_holdings_activity(OWNER, event).value}")

    dispatcher.set_frequency(OWNER, DigestFrequency.DAILY)
    receipt = TransactionReceipt(
        tx_hash="0xsmoke",
        type="acquired",
        side=PositionSide.TRUST,
        market_label="Smoke Market",
        shares_formatted="1.000000",
        assets_formatted="₸0.2500",
    )
    print(f"receipt (daily):   {dispatcher.notify_receipt(OWNER, receipt).value}")
    digest = dispatcher.flush_digest(OWNER)
    print(f"digest flush:      {digest.status.value if digest else 'not due'}")

    print()
    for message in outbox.flush():
        print(f"  [OK] {message.subject}")
    print()
    print("Notification flow complete")


if __name__ == "__main__":
    main()
