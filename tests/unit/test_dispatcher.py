"""Unit tests for NotificationDispatcher.

Covers suppression order, frequency routing, the freshness window, digest
flushing, and failure isolation.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from inturank.core.kv_store import DEDUP_NS_PREFIX, DIGEST_QUEUE_NS
from inturank.models.activity import NotificationClass
from inturank.models.digest import ActivityDigestItem, ReceiptDigestItem
from inturank.models.messages import DeliveryStatus, DispatchOutcome
from inturank.models.subscriptions import DigestFrequency
from inturank.routing.dispatcher import NotificationDispatcher
from inturank.routing.gateways import ConfigurationMissing, TransportFailure
from inturank.routing.gateways.outbox import OutboxGateway


class _ExplodingGateway:
    """A gateway with a bug in it."""

    @property
    def gateway_name(self) -> str:
        return "exploding"

    def deliver(self, message):
        raise KeyError("unexpected")


def _dispatcher(gateway, subscriptions, ledger, digest_queue, clock, failures=None):
    return NotificationDispatcher(
        subscriptions,
        ledger,
        digest_queue,
        gateway,
        clock=clock,
        on_failure=None if failures is None else failures.append,
    )


# ---------------------------------------------------------------------------
# Test: suppression
# ---------------------------------------------------------------------------


class TestSuppression:
    def test_unsubscribed_writes_nothing(self, dispatcher, store, outbox, owner, make_event):
        outcome = dispatcher.notify_holdings_activity(owner, make_event())
        assert outcome == DispatchOutcome.UNSUBSCRIBED
        assert outcome.is_suppressed
        assert outbox.pending_count == 0
        assert store.get(DEDUP_NS_PREFIX + "holdings_activity", owner) is None

    def test_unsubscribed_receipt(self, dispatcher, outbox, owner, make_receipt):
        assert dispatcher.notify_receipt(owner, make_receipt()) == DispatchOutcome.UNSUBSCRIBED
        assert outbox.pending_count == 0

    def test_duplicate_holdings_event(self, dispatcher, subscriptions, outbox, owner, make_event):
        subscriptions.upsert(owner, "a@b.com")
        assert dispatcher.notify_holdings_activity(owner, make_event()) == DispatchOutcome.DELIVERED
        assert dispatcher.notify_holdings_activity(owner, make_event()) == DispatchOutcome.DUPLICATE
        assert outbox.pending_count == 1

    def test_classes_dedup_separately(self, dispatcher, subscriptions, outbox, owner, make_event):
        subscriptions.upsert(owner, "a@b.com")
        dispatcher.notify_holdings_activity(owner, make_event("e1"))
        assert dispatcher.notify_follow_activity(owner, make_event("e1")) == DispatchOutcome.DELIVERED
        assert outbox.pending_count == 2

    def test_stale_follow_event_is_recorded_not_sent(
        self, dispatcher, subscriptions, ledger, outbox, owner, make_event, clock
    ):
        subscriptions.upsert(owner, "a@b.com")
        old = make_event("old", timestamp=clock() - timedelta(hours=3))

        assert dispatcher.notify_follow_activity(owner, old) == DispatchOutcome.STALE
        assert ledger.has_seen(owner, NotificationClass.FOLLOW_ACTIVITY, "old")
        assert dispatcher.notify_follow_activity(owner, old) == DispatchOutcome.DUPLICATE
        assert outbox.pending_count == 0

    def test_follow_event_inside_window_is_sent(
        self, dispatcher, subscriptions, outbox, owner, make_event, clock
    ):
        subscriptions.upsert(owner, "a@b.com")
        recent = make_event("recent", timestamp=clock() - timedelta(hours=2))
        assert dispatcher.notify_follow_activity(owner, recent) == DispatchOutcome.DELIVERED
        assert outbox.pending_count == 1

    def test_holdings_activity_has_no_freshness_window(
        self, dispatcher, subscriptions, outbox, owner, make_event, clock
    ):
        subscriptions.upsert(owner, "a@b.com")
        old = make_event("old", timestamp=clock() - timedelta(days=2))
        assert dispatcher.notify_holdings_activity(owner, old) == DispatchOutcome.DELIVERED

    def test_receipts_are_never_deduplicated(
        self, dispatcher, subscriptions, outbox, owner, make_receipt
    ):
        subscriptions.upsert(owner, "a@b.com")
        dispatcher.notify_receipt(owner, make_receipt())
        dispatcher.notify_receipt(owner, make_receipt())
        assert outbox.pending_count == 2

    def test_custom_freshness_window(
        self, subscriptions, ledger, digest_queue, outbox, clock, owner, make_event
    ):
        dispatcher = NotificationDispatcher(
            subscriptions, ledger, digest_queue, outbox,
            clock=clock, freshness_window=timedelta(minutes=10),
        )
        subscriptions.upsert(owner, "a@b.com")
        event = make_event(timestamp=clock() - timedelta(minutes=30))
        assert dispatcher.notify_follow_activity(owner, event) == DispatchOutcome.STALE


# ---------------------------------------------------------------------------
# Test: routing by frequency
# ---------------------------------------------------------------------------


class TestRouting:
    def test_immediate_holdings_email(self, dispatcher, subscriptions, outbox, owner, make_event):
        subscriptions.upsert(owner, "a@b.com")
        dispatcher.notify_holdings_activity(owner, make_event("e1", "M1"))
        [message] = outbox.pending
        assert message.to == "a@b.com"
        assert "New activity in M1" in message.subject

    def test_follow_label_used(self, dispatcher, subscriptions, outbox, owner, make_event):
        subscriptions.upsert(owner, "a@b.com")
        dispatcher.notify_follow_activity(owner, make_event(), follow_label="Whale")
        assert outbox.pending[0].subject == "IntuRank: Whale acquired in M1"

    def test_daily_enqueues_instead_of_sending(
        self, dispatcher, subscriptions, digest_queue, ledger, outbox, owner, make_event
    ):
        subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        outcome = dispatcher.notify_holdings_activity(owner, make_event())
        assert outcome == DispatchOutcome.QUEUED
        assert outbox.pending_count == 0
        assert ledger.has_seen(owner, NotificationClass.HOLDINGS_ACTIVITY, "e1")
        [item] = digest_queue.drain(owner)
        assert isinstance(item, ActivityDigestItem)
        assert item.activity.market_label == "M1"

    def test_daily_receipt_is_queued(
        self, dispatcher, subscriptions, digest_queue, owner, make_receipt
    ):
        subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        assert dispatcher.notify_receipt(owner, make_receipt()) == DispatchOutcome.QUEUED
        assert isinstance(digest_queue.drain(owner)[0], ReceiptDigestItem)

    def test_daily_queue_keeps_newest_100(
        self, dispatcher, subscriptions, digest_queue, owner, make_event
    ):
        subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        for n in range(101):
            dispatcher.notify_holdings_activity(owner, make_event(f"e{n}", f"M{n}"))
        items = digest_queue.drain(owner)
        assert len(items) == 100
        assert items[0].activity.market_label == "M1"


# ---------------------------------------------------------------------------
# Test: digest flush
# ---------------------------------------------------------------------------


class TestFlushDigest:
    def test_not_subscribed(self, dispatcher, owner):
        assert dispatcher.flush_digest(owner) is None

    def test_immediate_subscriber_never_flushes(
        self, dispatcher, subscriptions, digest_queue, outbox, owner, make_receipt
    ):
        subscriptions.upsert(owner, "a@b.com")
        digest_queue.enqueue(owner, ReceiptDigestItem(receipt=make_receipt()))
        assert dispatcher.flush_digest(owner) is None
        assert outbox.pending_count == 0

    def test_empty_queue_is_not_due(self, dispatcher, subscriptions, outbox, owner):
        subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        assert dispatcher.flush_digest(owner) is None
        assert outbox.pending_count == 0

    def test_recent_digest_is_not_due(
        self, dispatcher, subscriptions, digest_queue, outbox, owner, clock, make_receipt
    ):
        subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        digest_queue.set_last_sent_at(owner, clock() - timedelta(hours=3))
        digest_queue.enqueue(owner, ReceiptDigestItem(receipt=make_receipt()))
        assert dispatcher.flush_digest(owner) is None
        assert digest_queue.size(owner) == 1

    def test_due_digest_is_sent_once(
        self, dispatcher, subscriptions, digest_queue, outbox, owner, clock, make_receipt, make_event
    ):
        subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        digest_queue.set_last_sent_at(owner, clock() - timedelta(hours=25))
        dispatcher.notify_receipt(owner, make_receipt("0x1"))
        dispatcher.notify_receipt(owner, make_receipt("0x2"))
        dispatcher.notify_holdings_activity(owner, make_event())

        result = dispatcher.flush_digest(owner)

        assert result is not None and result.ok
        [message] = outbox.pending
        assert message.subject == "IntuRank: Daily digest - 2 transactions, 1 activity update"
        assert digest_queue.size(owner) == 0
        assert digest_queue.get_last_sent_at(owner) == clock()
        assert dispatcher.flush_digest(owner) is None

    def test_switching_to_immediate_sends_pending_items(
        self, dispatcher, subscriptions, digest_queue, outbox, owner, make_receipt
    ):
        subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        dispatcher.notify_receipt(owner, make_receipt())
        updated = dispatcher.set_frequency(owner, DigestFrequency.IMMEDIATE)
        assert updated.frequency == DigestFrequency.IMMEDIATE
        assert outbox.pending[0].headers["X-IntuRank-Kind"] == "digest"
        assert digest_queue.size(owner) == 0

    def test_switching_to_daily_sends_nothing(self, dispatcher, subscriptions, outbox, owner):
        subscriptions.upsert(owner, "a@b.com")
        dispatcher.set_frequency(owner, DigestFrequency.DAILY)
        assert outbox.pending_count == 0

    def test_set_frequency_when_unsubscribed(self, dispatcher, owner):
        assert dispatcher.set_frequency(owner, DigestFrequency.DAILY) is None


# ---------------------------------------------------------------------------
# Test: subscribe / unsubscribe
# ---------------------------------------------------------------------------


class TestSubscriptionLifecycle:
    def test_subscribe_sends_welcome(self, dispatcher, outbox, owner):
        sub = dispatcher.subscribe(owner, "A@B.com", nickname="Al")
        assert sub.email == "a@b.com"
        [message] = outbox.pending
        assert message.subject == "You're in - IntuRank Email Alerts"
        assert message.to == "a@b.com"

    def test_subscribe_without_welcome(self, dispatcher, outbox, owner):
        dispatcher.subscribe(owner, "a@b.com", send_welcome=False)
        assert outbox.pending_count == 0

    def test_unsubscribe_drops_queue(
        self, dispatcher, subscriptions, digest_queue, store, owner, make_receipt
    ):
        dispatcher.subscribe(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        dispatcher.notify_receipt(owner, make_receipt())
        dispatcher.unsubscribe(owner)
        assert subscriptions.get(owner) is None
        assert store.get(DIGEST_QUEUE_NS, owner) is None


# ---------------------------------------------------------------------------
# Test: failure isolation
# ---------------------------------------------------------------------------


class TestFailures:
    def test_transport_failure_is_reported_not_raised(
        self, subscriptions, ledger, digest_queue, clock, owner, make_event
    ):
        failures = []
        gateway = OutboxGateway(fail_with=TransportFailure("relay down", status_code=502))
        dispatcher = _dispatcher(gateway, subscriptions, ledger, digest_queue, clock, failures)
        subscriptions.upsert(owner, "a@b.com")

        outcome = dispatcher.notify_holdings_activity(owner, make_event())

        assert outcome == DispatchOutcome.DELIVERED
        [failure] = failures
        assert failure.owner == owner
        assert failure.result.status == DeliveryStatus.FAILED
        assert failure.result.status_code == 502
        # No rollback: the event stays seen
        assert dispatcher.notify_holdings_activity(owner, make_event()) == DispatchOutcome.DUPLICATE

    def test_configuration_missing_is_distinct(
        self, subscriptions, ledger, digest_queue, clock, owner, make_event
    ):
        failures = []
        gateway = OutboxGateway(fail_with=ConfigurationMissing("no relay"))
        dispatcher = _dispatcher(gateway, subscriptions, ledger, digest_queue, clock, failures)
        subscriptions.upsert(owner, "a@b.com")
        dispatcher.notify_holdings_activity(owner, make_event())
        assert failures[0].result.status == DeliveryStatus.NOT_CONFIGURED
        assert failures[0].result.detail == "email not configured"

    def test_unexpected_exception_is_contained(
        self, subscriptions, ledger, digest_queue, clock, owner, make_event, caplog
    ):
        failures = []
        dispatcher = _dispatcher(
            _ExplodingGateway(), subscriptions, ledger, digest_queue, clock, failures
        )
        subscriptions.upsert(owner, "a@b.com")
        with caplog.at_level(logging.ERROR):
            outcome = dispatcher.notify_holdings_activity(owner, make_event())
        assert outcome == DispatchOutcome.DELIVERED
        assert failures[0].result.status == DeliveryStatus.FAILED
        assert "raised unexpectedly" in caplog.text

    def test_failed_digest_still_clears_queue(
        self, subscriptions, ledger, digest_queue, clock, owner, make_receipt
    ):
        failures = []
        gateway = OutboxGateway(fail_with=TransportFailure("relay down"))
        dispatcher = _dispatcher(gateway, subscriptions, ledger, digest_queue, clock, failures)
        subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
        dispatcher.notify_receipt(owner, make_receipt())

        result = dispatcher.flush_digest(owner)

        assert result.status == DeliveryStatus.FAILED
        assert digest_queue.size(owner) == 0
        assert len(failures) == 1

    def test_failing_callback_does_not_break_dispatch(
        self, subscriptions, ledger, digest_queue, clock, owner, make_event
    ):
        gateway = OutboxGateway(fail_with=TransportFailure("relay down"))
        dispatcher = _dispatcher(gateway, subscriptions, ledger, digest_queue, clock)
        seen = []

        def _broken(failure):
            raise ValueError("callback bug")

        dispatcher.register_failure_callback(_broken)
        dispatcher.register_failure_callback(seen.append)
        subscriptions.upsert(owner, "a@b.com")
        dispatcher.notify_holdings_activity(owner, make_event())
        assert len(seen) == 1

    def test_callback_registered_once(self, dispatcher, failures):
        dispatcher.register_failure_callback(failures.append)
        assert dispatcher._failure_callbacks.count(failures.append) == 1


# ---------------------------------------------------------------------------
# Test: background sends
# ---------------------------------------------------------------------------


class TestExecutor:
    def test_sends_are_submitted(
        self, subscriptions, ledger, digest_queue, clock, outbox, owner, make_event
    ):
        with ThreadPoolExecutor(max_workers=2) as executor:
            dispatcher = NotificationDispatcher(
                subscriptions, ledger, digest_queue, outbox, clock=clock, executor=executor
            )
            subscriptions.upsert(owner, "a@b.com")
            for n in range(3):
                assert (
                    dispatcher.notify_holdings_activity(owner, make_event(f"e{n}"))
                    == DispatchOutcome.DELIVERED
                )
            # Bookkeeping is synchronous even though sends are not
            assert ledger.size(owner, NotificationClass.HOLDINGS_ACTIVITY) == 3
        assert outbox.pending_count == 3

    def test_flush_reports_submitted(
        self, subscriptions, ledger, digest_queue, clock, outbox, owner, make_receipt
    ):
        with ThreadPoolExecutor(max_workers=1) as executor:
            dispatcher = NotificationDispatcher(
                subscriptions, ledger, digest_queue, outbox, clock=clock, executor=executor
            )
            subscriptions.upsert(owner, "a@b.com", frequency=DigestFrequency.DAILY)
            dispatcher.notify_receipt(owner, make_receipt())
            result = dispatcher.flush_digest(owner)
        assert result.status == DeliveryStatus.SUBMITTED
        assert outbox.pending_count == 1


class TestSeedSeen:
    @pytest.mark.parametrize("cls", list(NotificationClass))
    def test_seed_marks_without_sending(self, dispatcher, subscriptions, outbox, owner, cls):
        subscriptions.upsert(owner, "a@b.com")
        assert dispatcher.seed_seen(owner, cls, ["a", "b", "a"]) == 2
        assert outbox.pending_count == 0

    def test_seen_count(self, dispatcher, owner, make_event, subscriptions):
        assert dispatcher.seen_count(owner, NotificationClass.HOLDINGS_ACTIVITY) == 0
        subscriptions.upsert(owner, "a@b.com")
        dispatcher.notify_holdings_activity(owner, make_event("e1"))
        dispatcher.seed_seen(owner, NotificationClass.HOLDINGS_ACTIVITY, ["e2"])
        assert dispatcher.seen_count(owner, NotificationClass.HOLDINGS_ACTIVITY) == 2
        assert dispatcher.seen_count(owner, NotificationClass.FOLLOW_ACTIVITY) == 0
