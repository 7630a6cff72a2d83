"""Deduplication Ledger — bounded record of already-handled event ids.

One insertion-ordered id list per (owner, notification class).  An id in
the list means the event was emailed, queued, or deliberately suppressed,
and must never be evaluated again.  Ids only leave the list through FIFO
eviction once the cap is reached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from inturank.core.kv_store import DEDUP_NS_PREFIX, KeyValueStore
from inturank.models.activity import NotificationClass

logger = logging.getLogger(__name__)

MAX_IDS = 2000


def _namespace(notification_class: NotificationClass) -> str:
    return f"{DEDUP_NS_PREFIX}{notification_class.value}"


class DeduplicationLedger:
    """Pure membership oracle for the dispatcher.

    Parameters
    ----------
    store:
        The key-value store that owns the ``dedup.*`` namespaces.
    max_ids:
        Capacity per (owner, class).  The oldest ids are evicted first.
    """

    def __init__(self, store: KeyValueStore, *, max_ids: int = MAX_IDS) -> None:
        self._store = store
        if max_ids < 1:
            raise ValueError(f"max_ids must be at least 1, got {max_ids}")
        self._max_ids = max_ids

    def has_seen(
        self, owner: str, notification_class: NotificationClass, event_id: str
    ) -> bool:
        """Return ``True`` if *event_id* was already handled for this owner."""
        return event_id in self._load(owner, notification_class)

    def mark_seen(
        self, owner: str, notification_class: NotificationClass, event_id: str
    ) -> bool:
        """Record *event_id*.  Returns ``False`` if it was already present."""
        return self.mark_many(owner, notification_class, [event_id]) == 1

    def mark_many(
        self,
        owner: str,
        notification_class: NotificationClass,
        event_ids: Iterable[str],
    ) -> int:
        """Record several ids in one read-modify-write; returns how many were new."""
        ids = self._load(owner, notification_class)
        present = set(ids)
        added = 0
        for event_id in event_ids:
            if event_id in present:
                continue
            ids.append(event_id)
            present.add(event_id)
            added += 1
        if not added:
            return 0

        evicted = len(ids) - self._max_ids
        if evicted > 0:
            ids = ids[evicted:]
            logger.debug(
                "Dedup %s for %s at capacity, evicted %d oldest id(s)",
                notification_class.value,
                owner,
                evicted,
            )
        self._store.set(_namespace(notification_class), owner, ids)
        return added

    def size(self, owner: str, notification_class: NotificationClass) -> int:
        """Number of ids currently recorded for (owner, class)."""
        return len(self._load(owner, notification_class))

    def _load(self, owner: str, notification_class: NotificationClass) -> list[str]:
        raw = self._store.get(_namespace(notification_class), owner)
        if not isinstance(raw, list):
            return []
        return [str(item) for item in raw[-self._max_ids:]]
