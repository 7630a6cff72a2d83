"""Follow Registry — identities an owner follows, newest last."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from inturank.core.clock import Clock, utc_now
from inturank.core.kv_store import FOLLOWS_NS, KeyValueStore, normalize_address
from inturank.models.subscriptions import FollowEntry

logger = logging.getLogger(__name__)

MAX_FOLLOWS = 200


class FollowRegistry:
    """Per-owner ordered list of followed identities.

    At most one entry per followed identity, never the owner itself, and
    at most *max_follows* entries (oldest evicted first).
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Clock = utc_now,
        max_follows: int = MAX_FOLLOWS,
    ) -> None:
        self._store = store
        self._clock = clock
        if max_follows < 1:
            raise ValueError(f"max_follows must be at least 1, got {max_follows}")
        self._max_follows = max_follows

    def list(self, owner: str) -> list[FollowEntry]:
        """Return the owner's follows in the order they were added."""
        if not normalize_address(owner):
            return []
        raw = self._store.get(FOLLOWS_NS, owner)
        if not isinstance(raw, list):
            return []
        entries: list[FollowEntry] = []
        for item in raw[-self._max_follows:]:
            try:
                entries.append(FollowEntry.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping unreadable follow entry for %s: %s", owner, exc)
        return entries

    def alerting(self, owner: str) -> list[FollowEntry]:
        """Return the follows that have email alerts switched on."""
        return [entry for entry in self.list(owner) if entry.email_alerts]

    def follow(
        self,
        owner: str,
        identity_id: str,
        label: str | None = None,
        email_alerts: bool = True,
    ) -> FollowEntry | None:
        """Follow *identity_id*, replacing any earlier entry for it.

        Returns ``None`` without touching the registry when the owner tries
        to follow itself or either address is empty.
        """
        followed_id = normalize_address(identity_id)
        if not followed_id or not normalize_address(owner):
            return None
        if followed_id == normalize_address(owner):
            logger.debug("Ignoring self-follow for %s", owner)
            return None

        entries = [e for e in self.list(owner) if e.followed_id != followed_id]
        entry = FollowEntry(
            followed_id=followed_id,
            label=label,
            email_alerts=email_alerts,
            followed_at=self._clock(),
        )
        entries.append(entry)
        self._save(owner, entries)
        logger.info("%s now follows %s", owner, followed_id)
        return entry

    def unfollow(self, owner: str, identity_id: str) -> None:
        """Stop following *identity_id*; no-op if not followed."""
        followed_id = normalize_address(identity_id)
        entries = self.list(owner)
        remaining = [e for e in entries if e.followed_id != followed_id]
        if len(remaining) != len(entries):
            self._save(owner, remaining)
            logger.info("%s unfollowed %s", owner, followed_id)

    def is_following(self, owner: str, identity_id: str) -> FollowEntry | None:
        """Return the follow entry for *identity_id*, if any."""
        followed_id = normalize_address(identity_id)
        if not followed_id:
            return None
        for entry in self.list(owner):
            if entry.followed_id == followed_id:
                return entry
        return None

    def set_email_alerts(
        self, owner: str, identity_id: str, enabled: bool
    ) -> FollowEntry | None:
        """Toggle email alerts on an existing follow; no-op if absent."""
        followed_id = normalize_address(identity_id)
        entries = self.list(owner)
        for index, entry in enumerate(entries):
            if entry.followed_id == followed_id:
                updated = entry.model_copy(update={"email_alerts": enabled})
                entries[index] = updated
                self._save(owner, entries)
                return updated
        return None

    def _save(self, owner: str, entries: list[FollowEntry]) -> None:
        kept = entries[-self._max_follows:]
        self._store.set(
            FOLLOWS_NS, owner, [e.model_dump(mode="json") for e in kept]
        )
