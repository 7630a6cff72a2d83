"""NotificationPoller — one owner's poll loop over an activity source.

Each cycle:

1. Ask the source which markets the owner holds and fetch recent trades
   on them.  On the first cycle of a session, if no holdings event was
   ever recorded for the owner, every returned event is recorded as seen
   without sending (baseline), so a first run does not email the owner
   about the whole recent history.  Otherwise each event goes to the
   dispatcher as holdings activity, so a fresh process resumes from the
   persisted ledger.
2. For follows with email alerts on, fetch the followed identities'
   recent trades and hand each to the dispatcher as follow activity,
   labelled with the follow's own label when it has one.

A ``SourceUnavailable`` ends the cycle early; whatever was dispatched
before it stays dispatched and the report carries the error.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pydantic import BaseModel, Field

from inturank.core.follows import FollowRegistry
from inturank.core.kv_store import normalize_address
from inturank.models.activity import NotificationClass
from inturank.models.messages import DeliveryResult, DispatchOutcome
from inturank.routing.dispatcher import NotificationDispatcher
from inturank.sources.base import ActivitySource, SourceUnavailable

logger = logging.getLogger(__name__)

ACTIVITY_LIMIT = 40
FOLLOW_LIMIT = 30


class PollReport(BaseModel):
    """What one poll cycle did."""

    owner: str
    baseline: bool = False
    seeded: int = 0
    outcomes: dict[DispatchOutcome, int] = Field(default_factory=dict)
    error: str | None = None

    def record(self, outcome: DispatchOutcome) -> None:
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1

    def count(self, outcome: DispatchOutcome) -> int:
        return self.outcomes.get(outcome, 0)

    @property
    def dispatched(self) -> int:
        """Events that led to a send or a digest entry."""
        return self.count(DispatchOutcome.DELIVERED) + self.count(DispatchOutcome.QUEUED)

    @property
    def suppressed(self) -> int:
        return sum(n for outcome, n in self.outcomes.items() if outcome.is_suppressed)

    @property
    def ok(self) -> bool:
        return self.error is None


class NotificationPoller:
    """Drives the dispatcher from an ``ActivitySource``.

    Parameters
    ----------
    dispatcher:
        Receives every event the poller finds.
    follows:
        Supplies the identities whose activity the owner wants emailed.
    source:
        Where events come from.
    activity_limit, follow_limit:
        How many recent events to request per cycle.
    baseline_first_cycle:
        Seed the dedup ledger instead of sending on a session's first cycle
        when the owner has no recorded holdings events yet.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        follows: FollowRegistry,
        source: ActivitySource,
        *,
        activity_limit: int = ACTIVITY_LIMIT,
        follow_limit: int = FOLLOW_LIMIT,
        baseline_first_cycle: bool = True,
    ) -> None:
        self._dispatcher = dispatcher
        self._follows = follows
        self._source = source
        self._activity_limit = activity_limit
        self._follow_limit = follow_limit
        self._baseline_first_cycle = baseline_first_cycle
        self._primed: set[str] = set()

    def start_session(self, owner: str) -> DeliveryResult | None:
        """Begin a session for *owner*: the next cycle may seed a baseline, and
        a due digest is sent now."""
        self._primed.discard(normalize_address(owner))
        return self._dispatcher.flush_digest(owner)

    def run_cycle(self, owner: str) -> PollReport:
        """Fetch and dispatch one round of events for *owner*."""
        key = normalize_address(owner)
        report = PollReport(owner=key)
        try:
            self._poll_holdings(owner, key, report)
            self._poll_follows(owner, report)
        except SourceUnavailable as exc:
            logger.warning("Poll cycle for %s stopped early: %s", key, exc)
            report.error = str(exc)
        logger.debug(
            "Poll cycle for %s: %d dispatched, %d suppressed, %d seeded",
            key,
            report.dispatched,
            report.suppressed,
            report.seeded,
        )
        return report

    def run(
        self,
        owner: str,
        interval_seconds: float,
        *,
        max_cycles: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> list[PollReport]:
        """Start a session and poll every *interval_seconds*.

        Runs until *max_cycles* cycles have completed, or forever when it is
        ``None``.
        """
        self.start_session(owner)
        reports: list[PollReport] = []
        while max_cycles is None or len(reports) < max_cycles:
            if reports:
                sleep(interval_seconds)
            reports.append(self.run_cycle(owner))
        return reports

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _poll_holdings(self, owner: str, key: str, report: PollReport) -> None:
        market_ids = self._source.held_market_ids(owner)
        events = self._source.holdings_activity(owner, market_ids, self._activity_limit)

        if (
            self._baseline_first_cycle
            and key not in self._primed
            and self._dispatcher.seen_count(owner, NotificationClass.HOLDINGS_ACTIVITY) == 0
        ):
            report.baseline = True
            report.seeded = self._dispatcher.seed_seen(
                owner, NotificationClass.HOLDINGS_ACTIVITY, [e.id for e in events]
            )
            self._primed.add(key)
            return

        self._primed.add(key)
        for event in events:
            report.record(self._dispatcher.notify_holdings_activity(owner, event))

    def _poll_follows(self, owner: str, report: PollReport) -> None:
        follows = self._follows.alerting(owner)
        if not follows:
            return
        by_sender = {entry.followed_id: entry for entry in follows}
        events = self._source.follow_activity(list(by_sender), self._follow_limit)
        for event in events:
            entry = by_sender.get(normalize_address(event.sender_id))
            if entry is None:
                continue
            report.record(
                self._dispatcher.notify_follow_activity(owner, event, follow_label=entry.label)
            )
