"""IntuRank email notifications.

Decides which market activity reaches an owner's inbox and when:
  - Per-owner subscriptions with immediate or daily-digest delivery
  - Follows of other identities, with per-follow email alerts
  - Bounded per-class deduplication so no event is emailed twice
  - Freshness window for follow activity, baseline seeding for first polls
  - Daily digest queue flushed on session start
  - HTTP email relay gateway (httpx) and an in-memory outbox for dry runs
"""

__version__ = "0.1.0"
__description__ = "Email notification dispatch for IntuRank semantic markets"

from inturank.core.notifier import Notifier
from inturank.routing.dispatcher import NotificationDispatcher
from inturank.cli.app import app as cli

__all__ = ["Notifier", "NotificationDispatcher", "cli", "__version__"]
