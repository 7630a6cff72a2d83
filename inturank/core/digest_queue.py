"""Digest Queue — per-owner buffer of items waiting for the daily digest."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from inturank.core.clock import EPOCH, Clock, utc_now
from inturank.core.kv_store import DIGEST_LAST_SENT_NS, DIGEST_QUEUE_NS, KeyValueStore
from inturank.models.digest import DIGEST_ITEM_ADAPTER, DigestItem

logger = logging.getLogger(__name__)

MAX_DIGEST_ITEMS = 100
DIGEST_INTERVAL = timedelta(hours=24)


class DigestQueue:
    """Ordered, bounded digest buffer plus the last-flush timestamp.

    The last-sent time is persisted as epoch milliseconds; ``0`` (or
    nothing stored) means a digest was never sent.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Clock = utc_now,
        max_items: int = MAX_DIGEST_ITEMS,
    ) -> None:
        self._store = store
        self._clock = clock
        if max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {max_items}")
        self._max_items = max_items

    def enqueue(self, owner: str, item: DigestItem) -> None:
        """Append *item*, dropping the oldest items beyond capacity."""
        items = self.drain(owner)
        items.append(item)
        dropped = len(items) - self._max_items
        if dropped > 0:
            items = items[dropped:]
            logger.debug("Digest queue for %s full, dropped %d oldest", owner, dropped)
        self._store.set(
            DIGEST_QUEUE_NS,
            owner,
            [DIGEST_ITEM_ADAPTER.dump_python(i, mode="json") for i in items],
        )

    def drain(self, owner: str) -> list[DigestItem]:
        """Return the queued items in order without removing them."""
        raw = self._store.get(DIGEST_QUEUE_NS, owner)
        if not isinstance(raw, list):
            return []
        items: list[DigestItem] = []
        for entry in raw[-self._max_items:]:
            try:
                items.append(DIGEST_ITEM_ADAPTER.validate_python(entry))
            except ValidationError as exc:
                logger.warning("Skipping unreadable digest item for %s: %s", owner, exc)
        return items

    def clear(self, owner: str) -> None:
        """Empty the owner's queue."""
        self._store.delete(DIGEST_QUEUE_NS, owner)

    def size(self, owner: str) -> int:
        return len(self.drain(owner))

    def get_last_sent_at(self, owner: str) -> datetime:
        """Return when the last digest went out, or the epoch if never."""
        raw = self._store.get(DIGEST_LAST_SENT_NS, owner)
        if not isinstance(raw, (int, float)) or isinstance(raw, bool) or raw <= 0:
            return EPOCH
        return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)

    def set_last_sent_at(self, owner: str, when: datetime) -> None:
        self._store.set(DIGEST_LAST_SENT_NS, owner, int(when.timestamp() * 1000))

    def is_due(self, owner: str, interval: timedelta = DIGEST_INTERVAL) -> bool:
        """True iff *interval* has elapsed since the last digest and items wait."""
        if self._clock() - self.get_last_sent_at(owner) < interval:
            return False
        return self.size(owner) > 0
