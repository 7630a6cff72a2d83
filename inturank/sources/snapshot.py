"""JsonSnapshotSource — serves activity from a JSON document on disk.

The document mirrors what the graph API returns for one owner::

    {
      "positions": [{"vault": {"term_id": "0xabc"}}, "0xdef", ...],
      "activity": [{"id": "...", "type": "acquired", "marketLabel": ...}],
      "followActivity": [{"id": "...", "senderId": "0x...", ...}]
    }

``activity`` and ``followActivity`` hold ``ActivityEvent`` payloads
(camelCase keys, epoch-millisecond timestamps allowed).  The file is
re-read on every call, so a long-running poller sees edits between cycles.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from inturank.core.kv_store import normalize_address
from inturank.models.activity import ActivityEvent
from inturank.sources.base import SourceUnavailable

logger = logging.getLogger(__name__)


def _market_id(position: Any) -> str | None:
    if isinstance(position, str):
        return position
    if not isinstance(position, dict):
        return None
    vault = position.get("vault")
    if isinstance(vault, dict) and vault.get("term_id"):
        return str(vault["term_id"])
    for key in ("marketId", "market_id", "term_id"):
        if position.get(key):
            return str(position[key])
    return None


class JsonSnapshotSource:
    """Activity source backed by a JSON snapshot file.

    Parameters
    ----------
    path:
        Location of the snapshot document.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def held_market_ids(self, owner: str) -> list[str]:
        ids: list[str] = []
        for position in self._section("positions"):
            market_id = _market_id(position)
            if market_id and market_id not in ids:
                ids.append(market_id)
        return ids

    def holdings_activity(
        self, owner: str, market_ids: Sequence[str], limit: int
    ) -> list[ActivityEvent]:
        held = {normalize_address(m) for m in market_ids}
        if not held:
            return []
        me = normalize_address(owner)
        events = [
            event
            for event in self._events("activity")
            if normalize_address(event.market_id) in held
            and normalize_address(event.sender_id) != me
        ]
        return events[:limit]

    def follow_activity(
        self, sender_ids: Sequence[str], limit: int
    ) -> list[ActivityEvent]:
        senders = {normalize_address(s) for s in sender_ids}
        if not senders:
            return []
        events = [
            event
            for event in self._events("followActivity")
            if normalize_address(event.sender_id) in senders
        ]
        return events[:limit]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise SourceUnavailable(f"cannot read snapshot {self._path}: {exc}") from exc
        except ValueError as exc:
            raise SourceUnavailable(f"snapshot {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise SourceUnavailable(f"snapshot {self._path} must be a JSON object")
        return data

    def _section(self, name: str) -> list[Any]:
        section = self._load().get(name) or []
        return section if isinstance(section, list) else []

    def _events(self, name: str) -> list[ActivityEvent]:
        events: list[ActivityEvent] = []
        for payload in self._section(name):
            try:
                events.append(ActivityEvent.model_validate(payload))
            except ValidationError as exc:
                logger.warning("Skipping malformed %s event in %s: %s", name, self._path, exc)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events

    def __repr__(self) -> str:
        return f"JsonSnapshotSource(path={str(self._path)!r})"
