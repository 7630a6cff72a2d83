"""IntuRank notification models — all Pydantic v2, all frozen (immutable)."""

from inturank.models.activity import (
    ActivityEvent,
    ActivityKind,
    FormattedActivity,
    NotificationClass,
    PositionSide,
    TransactionReceipt,
)
from inturank.models.digest import (
    DIGEST_ITEM_ADAPTER,
    ActivityDigestItem,
    DigestItem,
    ReceiptDigestItem,
)
from inturank.models.messages import (
    DeliveryFailure,
    DeliveryResult,
    DeliveryStatus,
    DispatchOutcome,
    EmailMessage,
)
from inturank.models.subscriptions import DigestFrequency, FollowEntry, Subscription

__all__ = [
    # subscriptions
    "DigestFrequency",
    "Subscription",
    "FollowEntry",
    # activity
    "NotificationClass",
    "ActivityKind",
    "PositionSide",
    "ActivityEvent",
    "FormattedActivity",
    "TransactionReceipt",
    # digest
    "ReceiptDigestItem",
    "ActivityDigestItem",
    "DigestItem",
    "DIGEST_ITEM_ADAPTER",
    # messages
    "EmailMessage",
    "DeliveryStatus",
    "DeliveryResult",
    "DeliveryFailure",
    "DispatchOutcome",
]
