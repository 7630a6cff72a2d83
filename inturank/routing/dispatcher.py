"""NotificationDispatcher — decides whether and when an event is emailed.

Every event handed to the dispatcher ends in exactly one
``DispatchOutcome``:

- ``UNSUBSCRIBED``: the owner has no subscription; nothing is written.
- ``DUPLICATE``: the id is already in the owner's dedup ledger for this
  notification class.
- ``STALE``: follow activity older than the freshness window.  The id is
  still recorded so the event is never reconsidered, but no email goes
  out.  This keeps a new follow's back-catalogue from flooding the inbox.
- ``DELIVERED``: immediate subscriber; the id is recorded, then a send
  is attempted.
- ``QUEUED``: daily subscriber; the id is recorded and a structured item
  is appended to the digest queue.

Receipts for the owner's own trades skip the dedup and freshness checks.

Bookkeeping always happens before the send and is never rolled back.  A
failed send is logged, reported to the registered failure callbacks, and
otherwise treated as handled, so a broken relay cannot cause a retry storm
on the next poll.  Nothing raised by a gateway reaches the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Executor
from datetime import timedelta

from inturank.core.clock import Clock, utc_now
from inturank.core.dedup_ledger import DeduplicationLedger
from inturank.core.digest_queue import DIGEST_INTERVAL, DigestQueue
from inturank.core.subscriptions import SubscriptionRegistry
from inturank.models.activity import (
    ActivityEvent,
    FormattedActivity,
    NotificationClass,
    TransactionReceipt,
)
from inturank.models.digest import ActivityDigestItem, DigestItem, ReceiptDigestItem
from inturank.models.messages import (
    DeliveryFailure,
    DeliveryResult,
    DeliveryStatus,
    DispatchOutcome,
    EmailMessage,
)
from inturank.models.subscriptions import DigestFrequency, Subscription
from inturank.routing.composer import MessageComposer
from inturank.routing.formatting import format_activity
from inturank.routing.gateways import ConfigurationMissing, DeliveryGateway, TransportFailure

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = timedelta(hours=2)

FailureCallback = Callable[[DeliveryFailure], None]


class NotificationDispatcher:
    """Routes notification events to the gateway or the digest queue.

    Parameters
    ----------
    subscriptions, ledger, digest_queue:
        State components, each scoped by owner address.
    gateway:
        Where composed messages are sent.
    composer:
        Builds messages; defaults to ``MessageComposer()``.
    clock:
        Source of "now" for freshness and digest timing.
    freshness_window:
        Follow activity older than this is suppressed.
    digest_interval:
        Minimum time between two digests for one owner.
    on_failure:
        Optional failure callback, same as ``register_failure_callback``.
    executor:
        When given, sends are submitted to it fire-and-forget and may
        complete out of order.  Otherwise they run inline.
    """

    def __init__(
        self,
        subscriptions: SubscriptionRegistry,
        ledger: DeduplicationLedger,
        digest_queue: DigestQueue,
        gateway: DeliveryGateway,
        *,
        composer: MessageComposer | None = None,
        clock: Clock = utc_now,
        freshness_window: timedelta = FRESHNESS_WINDOW,
        digest_interval: timedelta = DIGEST_INTERVAL,
        on_failure: FailureCallback | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._subscriptions = subscriptions
        self._ledger = ledger
        self._digest_queue = digest_queue
        self._gateway = gateway
        self._composer = composer or MessageComposer()
        self._clock = clock
        self._freshness_window = freshness_window
        self._digest_interval = digest_interval
        self._executor = executor
        self._failure_callbacks: list[FailureCallback] = []
        if on_failure is not None:
            self.register_failure_callback(on_failure)

    # ------------------------------------------------------------------
    # Failure reporting
    # ------------------------------------------------------------------

    def register_failure_callback(self, callback: FailureCallback) -> None:
        """Call *callback* with a ``DeliveryFailure`` whenever a send fails."""
        if callback not in self._failure_callbacks:
            self._failure_callbacks.append(callback)

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    def subscribe(
        self,
        owner: str,
        email: str,
        nickname: str | None = None,
        frequency: DigestFrequency | None = None,
        *,
        send_welcome: bool = True,
    ) -> Subscription:
        """Save the owner's subscription and send the welcome email."""
        subscription = self._subscriptions.upsert(owner, email, nickname, frequency)
        if send_welcome:
            self._deliver(
                owner, self._composer.welcome(subscription.email, subscription.nickname)
            )
        return subscription

    def unsubscribe(self, owner: str) -> None:
        """Remove the subscription and drop any digest items still waiting."""
        self._subscriptions.remove(owner)
        self._digest_queue.clear(owner)

    def set_frequency(
        self, owner: str, frequency: DigestFrequency
    ) -> Subscription | None:
        """Change the owner's frequency.

        Moving from daily to immediate sends whatever is still queued right
        away instead of leaving it for a digest that will never be due.
        """
        previous = self._subscriptions.get(owner)
        updated = self._subscriptions.set_frequency(owner, frequency)
        if (
            updated is not None
            and previous is not None
            and previous.frequency == DigestFrequency.DAILY
            and frequency == DigestFrequency.IMMEDIATE
            and self._digest_queue.size(owner) > 0
        ):
            self._send_digest(owner, updated)
        return updated

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------

    def notify_holdings_activity(
        self, owner: str, event: ActivityEvent
    ) -> DispatchOutcome:
        """Someone traded on a market the owner holds."""
        subscription = self._subscriptions.get(owner)
        if subscription is None:
            return DispatchOutcome.UNSUBSCRIBED
        if not self._ledger.mark_seen(owner, NotificationClass.HOLDINGS_ACTIVITY, event.id):
            logger.debug("Holdings event %s already handled for %s", event.id, owner)
            return DispatchOutcome.DUPLICATE

        activity = format_activity(event)
        return self._route(
            owner,
            subscription,
            ActivityDigestItem(activity=activity),
            lambda: self._composer.holdings_activity(subscription.email, activity),
        )

    def notify_follow_activity(
        self,
        owner: str,
        event: ActivityEvent,
        follow_label: str | None = None,
    ) -> DispatchOutcome:
        """An identity the owner follows traded."""
        subscription = self._subscriptions.get(owner)
        if subscription is None:
            return DispatchOutcome.UNSUBSCRIBED
        if not self._ledger.mark_seen(owner, NotificationClass.FOLLOW_ACTIVITY, event.id):
            logger.debug("Follow event %s already handled for %s", event.id, owner)
            return DispatchOutcome.DUPLICATE

        if event.timestamp < self._clock() - self._freshness_window:
            logger.debug(
                "Follow event %s for %s is older than %s, recorded without email",
                event.id,
                owner,
                self._freshness_window,
            )
            return DispatchOutcome.STALE

        activity = format_activity(event, sender_label=follow_label)
        return self._route(
            owner,
            subscription,
            ActivityDigestItem(activity=activity),
            lambda: self._composer.follow_activity(subscription.email, activity),
        )

    def notify_receipt(self, owner: str, receipt: TransactionReceipt) -> DispatchOutcome:
        """The owner completed a trade."""
        subscription = self._subscriptions.get(owner)
        if subscription is None:
            return DispatchOutcome.UNSUBSCRIBED
        return self._route(
            owner,
            subscription,
            ReceiptDigestItem(receipt=receipt),
            lambda: self._composer.receipt(subscription.email, receipt),
        )

    def seed_seen(
        self,
        owner: str,
        notification_class: NotificationClass,
        event_ids: Iterable[str],
    ) -> int:
        """Record *event_ids* as handled without sending anything.

        Used to baseline the first poll of a session.  Returns how many
        ids were new.
        """
        added = self._ledger.mark_many(owner, notification_class, event_ids)
        if added:
            logger.debug(
                "Seeded %d %s id(s) for %s", added, notification_class.value, owner
            )
        return added

    def seen_count(self, owner: str, notification_class: NotificationClass) -> int:
        """Number of ids already recorded for (owner, class)."""
        return self._ledger.size(owner, notification_class)

    # ------------------------------------------------------------------
    # Digest
    # ------------------------------------------------------------------

    def flush_digest(self, owner: str) -> DeliveryResult | None:
        """Send the owner's digest if one is due.

        Safe to call on every app load: it only sends for daily subscribers
        whose queue is non-empty and whose last digest is at least one
        digest interval old.  Returns the delivery result, or ``None`` when
        no digest was due.
        """
        subscription = self._subscriptions.get(owner)
        if subscription is None or subscription.frequency != DigestFrequency.DAILY:
            return None
        if not self._digest_queue.is_due(owner, self._digest_interval):
            return None
        return self._send_digest(owner, subscription)

    def _send_digest(self, owner: str, subscription: Subscription) -> DeliveryResult | None:
        items = self._digest_queue.drain(owner)
        if not items:
            return None
        receipts, activities = _partition(items)
        now = self._clock()
        message = self._composer.digest(
            subscription.email, receipts, activities, period_end=now
        )
        self._digest_queue.clear(owner)
        self._digest_queue.set_last_sent_at(owner, now)
        logger.info(
            "Digest for %s: %d receipt(s), %d activity item(s)",
            owner,
            len(receipts),
            len(activities),
        )
        return self._deliver(owner, message)

    # ------------------------------------------------------------------
    # Internal: routing and sending
    # ------------------------------------------------------------------

    def _route(
        self,
        owner: str,
        subscription: Subscription,
        item: DigestItem,
        compose: Callable[[], EmailMessage],
    ) -> DispatchOutcome:
        if subscription.frequency == DigestFrequency.DAILY:
            self._digest_queue.enqueue(owner, item)
            logger.debug("Queued %s item for %s's digest", item.kind, owner)
            return DispatchOutcome.QUEUED
        self._deliver(owner, compose())
        return DispatchOutcome.DELIVERED

    def _deliver(self, owner: str, message: EmailMessage) -> DeliveryResult:
        if self._executor is None:
            return self._send(owner, message)
        self._executor.submit(self._send, owner, message)
        return DeliveryResult(status=DeliveryStatus.SUBMITTED)

    def _send(self, owner: str, message: EmailMessage) -> DeliveryResult:
        gateway = self._gateway.gateway_name
        try:
            result = self._gateway.deliver(message)
        except ConfigurationMissing as exc:
            logger.warning(
                "Email not configured, %r for %s not sent: %s", message.subject, owner, exc
            )
            result = DeliveryResult(
                status=DeliveryStatus.NOT_CONFIGURED,
                detail="email not configured",
                status_code=exc.status_code,
            )
        except TransportFailure as exc:
            logger.warning("Gateway %s failed for %s: %s", gateway, owner, exc)
            result = DeliveryResult(
                status=DeliveryStatus.FAILED, detail=str(exc), status_code=exc.status_code
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Gateway %s raised unexpectedly for %s", gateway, owner)
            result = DeliveryResult(status=DeliveryStatus.FAILED, detail=str(exc))

        if not result.ok:
            self._report_failure(DeliveryFailure(owner=owner, message=message, result=result))
        return result

    def _report_failure(self, failure: DeliveryFailure) -> None:
        for callback in self._failure_callbacks:
            try:
                callback(failure)
            except Exception:  # noqa: BLE001
                logger.exception("Failure callback %r raised", callback)


def _partition(
    items: list[DigestItem],
) -> tuple[list[TransactionReceipt], list[FormattedActivity]]:
    receipts: list[TransactionReceipt] = []
    activities: list[FormattedActivity] = []
    for item in items:
        if isinstance(item, ReceiptDigestItem):
            receipts.append(item.receipt)
        else:
            activities.append(item.activity)
    return receipts, activities
