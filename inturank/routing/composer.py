"""Message composition — subjects, plain-text bodies, and template calls.

Builds ``EmailMessage`` objects from structured notification data.  HTML
comes from the injected ``TemplateRenderer``; this module only decides
wording for subjects and plain-text bodies.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from inturank.models.activity import (
    ActivityKind,
    FormattedActivity,
    TransactionReceipt,
)
from inturank.models.messages import EmailMessage
from inturank.routing.formatting import MISSING
from inturank.routing.templates import BRAND, HtmlTemplates, TemplateRenderer

WELCOME_SUBJECT = f"You're in - {BRAND} Email Alerts"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" + ("" if count == 1 else "s")


def _activity_sentence(actor: str, activity: FormattedActivity) -> str:
    text = f"{actor} {activity.type.value}"
    if activity.shares_formatted != MISSING:
        text += f" {activity.shares_formatted} shares"
    if activity.assets_formatted != MISSING:
        text += f" ({activity.assets_formatted})"
    return f"{text} in {activity.market_label}."


class MessageComposer:
    """Composes every outbound message kind.

    Parameters
    ----------
    templates:
        The HTML templating collaborator.  Defaults to ``HtmlTemplates``.
    """

    def __init__(self, templates: TemplateRenderer | None = None) -> None:
        self._templates = templates or HtmlTemplates()

    def welcome(self, to: str, nickname: str | None = None) -> EmailMessage:
        return EmailMessage(
            to=to,
            subject=WELCOME_SUBJECT,
            body_text=(
                f"You're subscribed to {BRAND} email alerts. We'll notify you "
                "when there's activity on your holdings."
            ),
            body_html=self._templates.welcome(email=to, nickname=nickname),
            headers={"X-IntuRank-Kind": "welcome"},
        )

    def holdings_activity(self, to: str, activity: FormattedActivity) -> EmailMessage:
        """Someone else traded on a market the owner holds."""
        headline = (
            "Liquidation" if activity.type == ActivityKind.LIQUIDATED else "New activity"
        )
        return EmailMessage(
            to=to,
            subject=f"{BRAND}: {headline} in {activity.market_label}",
            body_text=self._activity_text(activity.sender_label, activity),
            body_html=self._templates.activity(
                activity, heading="Activity in your holdings"
            ),
            headers={"X-IntuRank-Kind": "holdings_activity"},
        )

    def follow_activity(self, to: str, activity: FormattedActivity) -> EmailMessage:
        """An identity the owner follows traded."""
        return EmailMessage(
            to=to,
            subject=(
                f"{BRAND}: {activity.sender_label} {activity.type.value} "
                f"in {activity.market_label}"
            ),
            body_text=self._activity_text(activity.sender_label, activity),
            body_html=self._templates.activity(
                activity, heading=f"{activity.sender_label} is on the move"
            ),
            headers={"X-IntuRank-Kind": "follow_activity"},
        )

    def receipt(self, to: str, receipt: TransactionReceipt) -> EmailMessage:
        """The owner's own trade."""
        parts = [
            f"You {receipt.type.value} {receipt.shares_formatted} shares "
            f"({receipt.side.value}) in {receipt.market_label}.",
        ]
        if receipt.assets_formatted:
            parts.append(f"Amount: {receipt.assets_formatted}")
        if receipt.tx_hash:
            parts.append(f"Tx: {receipt.tx_hash}")
        return EmailMessage(
            to=to,
            subject=f"{BRAND}: {receipt.type.value.title()} - {receipt.market_label}",
            body_text=" ".join(parts),
            body_html=self._templates.receipt(receipt),
            headers={"X-IntuRank-Kind": "receipt", "X-IntuRank-Tx": receipt.tx_hash},
        )

    def digest(
        self,
        to: str,
        receipts: Sequence[TransactionReceipt],
        activities: Sequence[FormattedActivity],
        *,
        period_end: datetime,
    ) -> EmailMessage:
        """One message summarizing everything queued since the last digest."""
        date_label = period_end.strftime("%a, %b %d, %Y")
        lines = [
            f"{BRAND} daily digest for {date_label}",
            "",
            f"{_plural(len(receipts), 'transaction')}, "
            f"{_plural(len(activities), 'activity update')}.",
        ]
        if receipts:
            lines += ["", "Your transactions:"]
            lines += [
                f"- {r.type.value.title()} {r.shares_formatted} shares ({r.side.value}) "
                f"in {r.market_label}, {r.assets_formatted}"
                for r in receipts
            ]
        if activities:
            lines += ["", "Activity on your holdings:"]
            lines += [f"- {_activity_sentence(a.sender_label, a)}" for a in activities]

        return EmailMessage(
            to=to,
            subject=(
                f"{BRAND}: Daily digest - {_plural(len(receipts), 'transaction')}, "
                f"{_plural(len(activities), 'activity update')}"
            ),
            body_text="\n".join(lines),
            body_html=self._templates.digest(
                receipts=receipts, activities=activities, date_label=date_label
            ),
            headers={"X-IntuRank-Kind": "digest"},
        )

    @staticmethod
    def _activity_text(actor: str, activity: FormattedActivity) -> str:
        lines = [_activity_sentence(actor, activity)]
        if activity.tx_hash:
            lines.append(f"Tx: {activity.tx_hash}")
        return "\n".join(lines)
