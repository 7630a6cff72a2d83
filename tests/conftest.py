"""Shared test fixtures for IntuRank notifications."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from inturank.core.dedup_ledger import DeduplicationLedger
from inturank.core.digest_queue import DigestQueue
from inturank.core.follows import FollowRegistry
from inturank.core.kv_store import InMemoryStore
from inturank.core.subscriptions import SubscriptionRegistry
from inturank.models.activity import (
    ActivityEvent,
    ActivityKind,
    PositionSide,
    TransactionReceipt,
)
from inturank.models.messages import DeliveryFailure
from inturank.routing.dispatcher import NotificationDispatcher
from inturank.routing.gateways.outbox import OutboxGateway

OWNER = "0xOwner000000000000000000000000000000000001"
OTHER = "0xb0b0000000000000000000000000000000000002"

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """A settable clock; call it to read the current time."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test databases and snapshots."""
    return tmp_path


@pytest.fixture
def owner() -> str:
    return OWNER


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock fixed at ``FIXED_NOW``."""
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    """Provide a fresh in-memory key-value store."""
    return InMemoryStore()


@pytest.fixture
def subscriptions(store: InMemoryStore, clock: FakeClock) -> SubscriptionRegistry:
    return SubscriptionRegistry(store, clock=clock)


@pytest.fixture
def follows(store: InMemoryStore, clock: FakeClock) -> FollowRegistry:
    return FollowRegistry(store, clock=clock)


@pytest.fixture
def ledger(store: InMemoryStore) -> DeduplicationLedger:
    return DeduplicationLedger(store)


@pytest.fixture
def digest_queue(store: InMemoryStore, clock: FakeClock) -> DigestQueue:
    return DigestQueue(store, clock=clock)


@pytest.fixture
def outbox() -> OutboxGateway:
    """Provide a recording gateway."""
    return OutboxGateway()


@pytest.fixture
def failures() -> list[DeliveryFailure]:
    """Collects failures reported by the dispatcher fixture."""
    return []


@pytest.fixture
def dispatcher(
    subscriptions: SubscriptionRegistry,
    ledger: DeduplicationLedger,
    digest_queue: DigestQueue,
    outbox: OutboxGateway,
    clock: FakeClock,
    failures: list[DeliveryFailure],
) -> NotificationDispatcher:
    """Provide a dispatcher wired to the in-memory components and outbox."""
    return NotificationDispatcher(
        subscriptions,
        ledger,
        digest_queue,
        outbox,
        clock=clock,
        on_failure=failures.append,
    )


# ---------------------------------------------------------------------------
# Event factories, shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event(clock: FakeClock) -> Callable[..., ActivityEvent]:
    """Factory fixture: build an ActivityEvent with sensible defaults."""

    def _factory(
        event_id: str = "e1",
        market_label: str = "M1",
        **overrides: Any,
    ) -> ActivityEvent:
        defaults: dict[str, Any] = {
            "id": event_id,
            "type": ActivityKind.ACQUIRED,
            "market_label": market_label,
            "sender_id": OTHER,
            "sender_label": "bob.eth",
            "shares": "1500000000000000000",
            "assets": "500000000000000000",
            "tx_hash": "0x" + "ab" * 32,
            "timestamp": clock(),
            "market_id": "0xmarket1",
        }
        defaults.update(overrides)
        return ActivityEvent(**defaults)

    return _factory


@pytest.fixture
def make_receipt() -> Callable[..., TransactionReceipt]:
    """Factory fixture: build a TransactionReceipt with sensible defaults."""

    def _factory(tx_hash: str = "0xtx1", **overrides: Any) -> TransactionReceipt:
        defaults: dict[str, Any] = {
            "tx_hash": tx_hash,
            "type": ActivityKind.ACQUIRED,
            "side": PositionSide.TRUST,
            "market_label": "M1",
            "shares_formatted": "1.000000",
            "assets_formatted": "₸0.5000",
        }
        defaults.update(overrides)
        return TransactionReceipt(**defaults)

    return _factory
