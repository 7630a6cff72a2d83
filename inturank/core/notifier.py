"""Notifier — wires the store, registries, dispatcher and poller together.

The CLI and any embedding application build one ``Notifier`` from a
``NotifyConfig`` and talk to its components; tests pass their own store,
gateway and clock.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Executor

from inturank.config import NotifyConfig
from inturank.core.clock import Clock, utc_now
from inturank.core.dedup_ledger import DeduplicationLedger
from inturank.core.digest_queue import DigestQueue
from inturank.core.follows import FollowRegistry
from inturank.core.kv_store import KeyValueStore, SQLiteStore
from inturank.core.poller import NotificationPoller
from inturank.core.subscriptions import SubscriptionRegistry
from inturank.models.messages import DeliveryFailure
from inturank.routing.dispatcher import NotificationDispatcher
from inturank.routing.gateways import DeliveryGateway
from inturank.routing.gateways.http import HttpDeliveryGateway
from inturank.sources.base import ActivitySource


class Notifier:
    """Owns one set of notification components.

    Parameters
    ----------
    config:
        Settings; a fresh ``NotifyConfig()`` when omitted.
    store:
        Key-value store.  Defaults to ``SQLiteStore(config.store_path)``.
    gateway:
        Delivery gateway.  Defaults to the HTTP relay at
        ``config.email_endpoint``.
    clock:
        Shared by every component.
    executor:
        Passed to the dispatcher for background sends.
    """

    def __init__(
        self,
        config: NotifyConfig | None = None,
        *,
        store: KeyValueStore | None = None,
        gateway: DeliveryGateway | None = None,
        clock: Clock = utc_now,
        executor: Executor | None = None,
    ) -> None:
        self.config = config or NotifyConfig()
        self.store = store or SQLiteStore(self.config.store_path)
        self.gateway = gateway or HttpDeliveryGateway(
            self.config.email_endpoint,
            timeout_seconds=self.config.email_timeout_seconds,
        )

        self.subscriptions = SubscriptionRegistry(self.store, clock=clock)
        self.follows = FollowRegistry(
            self.store, clock=clock, max_follows=self.config.max_follows
        )
        self.ledger = DeduplicationLedger(self.store, max_ids=self.config.max_dedup_ids)
        self.digest_queue = DigestQueue(
            self.store, clock=clock, max_items=self.config.max_digest_items
        )

        # Most recent failures, newest last
        self.failures: deque[DeliveryFailure] = deque(
            maxlen=self.config.max_recorded_failures
        )
        self.dispatcher = NotificationDispatcher(
            self.subscriptions,
            self.ledger,
            self.digest_queue,
            self.gateway,
            clock=clock,
            freshness_window=self.config.freshness_window,
            digest_interval=self.config.digest_interval,
            on_failure=self.failures.append,
            executor=executor,
        )

    def poller(
        self, source: ActivitySource, *, baseline_first_cycle: bool = True
    ) -> NotificationPoller:
        """Build a poller over *source* using the configured fetch limits."""
        return NotificationPoller(
            self.dispatcher,
            self.follows,
            source,
            activity_limit=self.config.activity_fetch_limit,
            follow_limit=self.config.follow_fetch_limit,
            baseline_first_cycle=baseline_first_cycle,
        )

    def close(self) -> None:
        close = getattr(self.gateway, "close", None)
        if callable(close):
            close()
