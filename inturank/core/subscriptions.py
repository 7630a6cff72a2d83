"""Subscription Registry — one email subscription per owner address."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from inturank.core.clock import Clock, utc_now
from inturank.core.kv_store import SUBSCRIPTION_NS, KeyValueStore
from inturank.models.subscriptions import DigestFrequency, Subscription

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Maps an owner to its email subscription.

    A missing record, a record without an email, and an unreadable record
    all mean "not subscribed".  Email syntax is not validated here.

    Parameters
    ----------
    store:
        The key-value store that owns the ``subscription`` namespace.
    clock:
        Source of "now" for ``subscribed_at``.
    """

    def __init__(self, store: KeyValueStore, *, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def get(self, owner: str) -> Subscription | None:
        """Return the owner's subscription, or ``None`` if not subscribed."""
        raw = self._store.get(SUBSCRIPTION_NS, owner)
        if not isinstance(raw, dict) or not raw.get("email"):
            return None
        try:
            return Subscription.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable subscription for %s: %s", owner, exc)
            return None

    def upsert(
        self,
        owner: str,
        email: str,
        nickname: str | None = None,
        frequency: DigestFrequency | None = None,
    ) -> Subscription:
        """Create or overwrite the owner's subscription.

        The original ``subscribed_at`` survives an overwrite, and so does
        the existing frequency when *frequency* is ``None``.
        """
        existing = self.get(owner)
        if frequency is None:
            frequency = existing.frequency if existing else DigestFrequency.IMMEDIATE
        subscription = Subscription(
            email=email.strip().lower(),
            nickname=(nickname or "").strip() or None,
            subscribed_at=existing.subscribed_at if existing else self._clock(),
            frequency=frequency,
        )
        self._save(owner, subscription)
        logger.info(
            "Subscription saved for %s (frequency=%s)", owner, subscription.frequency.value
        )
        return subscription

    def set_frequency(
        self, owner: str, frequency: DigestFrequency
    ) -> Subscription | None:
        """Change the frequency of an existing subscription; no-op otherwise."""
        existing = self.get(owner)
        if existing is None:
            return None
        updated = existing.model_copy(update={"frequency": frequency})
        self._save(owner, updated)
        return updated

    def remove(self, owner: str) -> None:
        """Delete the owner's subscription if there is one."""
        self._store.delete(SUBSCRIPTION_NS, owner)
        logger.info("Subscription removed for %s", owner)

    def _save(self, owner: str, subscription: Subscription) -> None:
        self._store.set(SUBSCRIPTION_NS, owner, subscription.model_dump(mode="json"))
