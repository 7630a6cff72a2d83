"""Activity source protocol and errors."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from inturank.models.activity import ActivityEvent


class SourceUnavailable(RuntimeError):
    """The activity source could not be read."""


@runtime_checkable
class ActivitySource(Protocol):
    """Protocol that every activity source implements."""

    def held_market_ids(self, owner: str) -> list[str]:
        """Ids of the markets the owner currently holds a position in."""
        ...

    def holdings_activity(
        self, owner: str, market_ids: Sequence[str], limit: int
    ) -> list[ActivityEvent]:
        """Recent trades by others on *market_ids*, newest first."""
        ...

    def follow_activity(
        self, sender_ids: Sequence[str], limit: int
    ) -> list[ActivityEvent]:
        """Recent trades made by any of *sender_ids*, newest first."""
        ...


