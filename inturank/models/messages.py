"""Outbound email messages and the outcomes of dispatching them."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EmailMessage(BaseModel):
    """A fully composed email, ready for a delivery gateway."""

    model_config = ConfigDict(frozen=True)

    to: str
    subject: str
    body_text: str
    body_html: str = ""
    headers: dict[str, str] = {}


class DeliveryStatus(str, Enum):
    """What happened when a message was handed to a gateway."""

    DELIVERED = "delivered"
    FAILED = "failed"
    NOT_CONFIGURED = "not_configured"
    SUBMITTED = "submitted"


class DeliveryResult(BaseModel):
    """Result of one delivery attempt."""

    model_config = ConfigDict(frozen=True)

    status: DeliveryStatus
    detail: str = ""
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.status in (DeliveryStatus.DELIVERED, DeliveryStatus.SUBMITTED)


class DeliveryFailure(BaseModel):
    """Handed to failure callbacks when a send does not go through."""

    model_config = ConfigDict(frozen=True)

    owner: str
    message: EmailMessage
    result: DeliveryResult
    failed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class DispatchOutcome(str, Enum):
    """Where a single event ended up.

    ``DELIVERED`` means a send was attempted, not that it succeeded; the
    ledger treats a failed send as handled.
    """

    DELIVERED = "delivered"
    QUEUED = "queued"
    UNSUBSCRIBED = "unsubscribed"
    DUPLICATE = "duplicate"
    STALE = "stale"

    @property
    def is_suppressed(self) -> bool:
        return self in (
            DispatchOutcome.UNSUBSCRIBED,
            DispatchOutcome.DUPLICATE,
            DispatchOutcome.STALE,
        )
