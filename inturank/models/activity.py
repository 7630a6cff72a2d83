"""Activity models — market events observed by the event source.

Event payloads arrive from the graph/indexing API in camelCase with
millisecond epoch timestamps; both spellings and both timestamp forms are
accepted here so the rest of the package only sees snake_case fields and
aware UTC datetimes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

# Epoch values above this are milliseconds (year 5138 in seconds).
_MS_THRESHOLD = 100_000_000_000


class NotificationClass(str, Enum):
    """Notification classes that carry their own deduplication ledger."""

    HOLDINGS_ACTIVITY = "holdings_activity"
    FOLLOW_ACTIVITY = "follow_activity"


class ActivityKind(str, Enum):
    """Direction of a trade."""

    ACQUIRED = "acquired"
    LIQUIDATED = "liquidated"


class PositionSide(str, Enum):
    """Which vault of a market a position sits in."""

    TRUST = "trust"
    DISTRUST = "distrust"


def _coerce_timestamp(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > _MS_THRESHOLD else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    return value


class ActivityEvent(BaseModel):
    """A buy or sell on a market, by anyone."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    type: ActivityKind
    market_label: str
    sender_id: str = ""
    sender_label: str = ""
    shares: str | None = None  # wei integer string
    assets: str | None = None  # wei integer string
    tx_hash: str | None = None
    timestamp: datetime
    market_id: str | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_from_epoch(cls, value: Any) -> Any:
        return _coerce_timestamp(value)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_is_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class FormattedActivity(BaseModel):
    """Display-ready activity fields handed to the templates."""

    model_config = ConfigDict(frozen=True)

    market_label: str
    sender_label: str
    type: ActivityKind
    shares_formatted: str
    assets_formatted: str
    tx_hash: str | None = None


class TransactionReceipt(BaseModel):
    """The owner's own completed trade."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    tx_hash: str
    type: ActivityKind
    side: PositionSide
    market_label: str
    shares_formatted: str
    assets_formatted: str
