"""Activity sources — where the poller gets market events from.

An ``ActivitySource`` answers three questions for a poll cycle: which
markets the owner holds, what happened recently on those markets, and what
a set of identities traded recently.  ``JsonSnapshotSource`` answers them
from a JSON document on disk.
"""

from inturank.sources.base import ActivitySource, SourceUnavailable
from inturank.sources.snapshot import JsonSnapshotSource

__all__ = ["ActivitySource", "JsonSnapshotSource", "SourceUnavailable"]
