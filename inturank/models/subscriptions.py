"""Subscription and follow models — per-owner notification preferences."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DigestFrequency(str, Enum):
    """How often a subscriber wants to be emailed."""

    IMMEDIATE = "immediate"
    DAILY = "daily"


class Subscription(BaseModel):
    """An owner's email subscription.

    ``subscribed_at`` is set when the owner first subscribes and is carried
    over unchanged by every later update.
    """

    model_config = ConfigDict(frozen=True)

    email: str
    nickname: str | None = None
    subscribed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    frequency: DigestFrequency = DigestFrequency.IMMEDIATE


class FollowEntry(BaseModel):
    """One identity the owner follows."""

    model_config = ConfigDict(frozen=True)

    followed_id: str  # lowercased identity address
    label: str | None = None
    email_alerts: bool = True
    followed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
