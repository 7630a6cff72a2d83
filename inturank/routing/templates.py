"""HTML email templates — pure functions from structured fields to markup.

Inline CSS only, table layout, so the emails render in common clients.
The dispatcher never builds markup itself; it hands structured fields to
a ``TemplateRenderer`` (``HtmlTemplates`` by default).
"""

from __future__ import annotations

from collections.abc import Sequence
from html import escape
from typing import Protocol, runtime_checkable

from inturank.models.activity import (
    ActivityKind,
    FormattedActivity,
    PositionSide,
    TransactionReceipt,
)
from inturank.routing.formatting import MISSING

BRAND = "IntuRank"
APP_ROOT_URL = "https://inturank.intuition.box/"
APP_PORTFOLIO_URL = "https://inturank.intuition.box/#/portfolio"
EXPLORER_URL = "https://explorer.intuition.systems"

_CYAN = "#00f3ff"
_GREEN = "#00ff88"
_RED = "#ff3366"
_TEXT = "#e2e8f0"
_MUTED = "#94a3b8"
_BORDER = "#1e293b"
_CARD_BG = "#0a0a0f"
_PAGE_BG = "#050508"
_TAGLINE = "Semantic markets &middot; Quantify identity &middot; Trust layer"


@runtime_checkable
class TemplateRenderer(Protocol):
    """The templating collaborator: one pure function per message kind."""

    def welcome(self, *, email: str, nickname: str | None = None) -> str: ...

    def receipt(self, receipt: TransactionReceipt) -> str: ...

    def activity(self, activity: FormattedActivity, *, heading: str) -> str: ...

    def digest(
        self,
        *,
        receipts: Sequence[TransactionReceipt],
        activities: Sequence[FormattedActivity],
        date_label: str,
    ) -> str: ...


def _tx_url(tx_hash: str) -> str:
    return f"{EXPLORER_URL}/tx/{escape(tx_hash)}"


def _short_hash(tx_hash: str) -> str:
    if len(tx_hash) <= 20:
        return escape(tx_hash)
    return f"{escape(tx_hash[:10])}&hellip;{escape(tx_hash[-8:])}"


def _row(label: str, value: str, color: str = _TEXT) -> str:
    return (
        f'<tr><td style="padding:8px 12px;border-bottom:1px solid {_BORDER};'
        f'color:{_MUTED};">{label}</td>'
        f'<td style="padding:8px 12px;border-bottom:1px solid {_BORDER};'
        f'text-align:right;color:{color};">{value}</td></tr>'
    )


def _button(label: str, href: str) -> str:
    return (
        '<table role="presentation" cellpadding="0" cellspacing="0" style="margin-top:24px;">'
        f'<tr><td style="background-color:{_CYAN};padding:14px 28px;">'
        f'<a href="{href}" style="font-size:11px;font-weight:900;letter-spacing:0.1em;'
        f'color:#000000;text-decoration:none;text-transform:uppercase;">{label}</a>'
        "</td></tr></table>"
    )


def _page(title: str, eyebrow: str, body: str, *, border: str = _CYAN) -> str:
    """Wrap *body* in the shared card layout."""
    return "\n".join([
        "<!DOCTYPE html>",
        '<html lang="en"><head><meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">',
        f"<title>{escape(title)} &mdash; {BRAND}</title></head>",
        f'<body style="margin:0;padding:0;background-color:{_PAGE_BG};font-family:Arial,sans-serif;">',
        f'<table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color:{_PAGE_BG};">',
        '<tr><td align="center" style="padding:32px 20px;">',
        f'<table role="presentation" cellpadding="0" cellspacing="0" style="max-width:560px;width:100%;'
        f'background-color:{_CARD_BG};border:2px solid {border};">',
        f'<tr><td style="padding:20px 24px;border-bottom:2px solid {border};">'
        f'<p style="margin:0;font-size:9px;font-weight:700;letter-spacing:0.25em;color:{_CYAN};'
        f'text-transform:uppercase;text-align:center;">{BRAND} &middot; {escape(eyebrow)}</p></td></tr>',
        f'<tr><td style="padding:24px 24px 28px 24px;">{body}</td></tr>',
        f'<tr><td style="padding:12px 24px;border-top:1px solid {border};">'
        f'<p style="margin:0;font-size:10px;color:{_MUTED};letter-spacing:0.08em;">{_TAGLINE}</p></td></tr>',
        "</table></td></tr></table></body></html>",
    ])


class HtmlTemplates:
    """Default ``TemplateRenderer`` producing the IntuRank card layout."""

    def welcome(self, *, email: str, nickname: str | None = None) -> str:
        name = (nickname or "").strip() or email
        greeting = f"Hey {escape(name)}," if name else "Hey there,"
        body = (
            f'<p style="margin:0 0 8px 0;font-size:14px;color:{_MUTED};font-weight:600;">{greeting}</p>'
            '<h1 style="margin:0 0 16px 0;font-size:26px;font-weight:900;color:#ffffff;'
            f'text-transform:uppercase;">Welcome to {BRAND}.</h1>'
            f'<p style="margin:0;font-size:14px;line-height:1.6;color:{_TEXT};">'
            "We'll email you when there's activity on your holdings or from the "
            "identities you follow, plus your own transaction receipts.</p>"
            + _button(f"Open {BRAND}", APP_ROOT_URL)
        )
        return _page(f"Welcome to {BRAND}", "Email Alerts", body)

    def receipt(self, receipt: TransactionReceipt) -> str:
        acquired = receipt.type == ActivityKind.ACQUIRED
        accent = _GREEN if acquired else _RED
        side = "TRUST" if receipt.side == PositionSide.TRUST else "DISTRUST"
        action = "ACQUIRED" if acquired else "LIQUIDATED"
        rows = "".join([
            _row("Market", escape(receipt.market_label)),
            _row("Side", side, accent),
            _row("Units (shares)", escape(receipt.shares_formatted)),
            _row("Price paid" if acquired else "Proceeds", escape(receipt.assets_formatted), accent),
            _row(
                "Transaction",
                f'<a href="{_tx_url(receipt.tx_hash)}" style="color:{_CYAN};">'
                f"{_short_hash(receipt.tx_hash)}</a>",
            ),
        ])
        body = (
            f'<p style="margin:0 0 6px 0;font-size:10px;font-weight:700;color:{_CYAN};'
            'text-transform:uppercase;">Transaction receipt</p>'
            f'<h1 style="margin:0 0 20px 0;font-size:20px;font-weight:900;color:{accent};">'
            f"{action} &middot; {side}</h1>"
            f'<table role="presentation" width="100%" cellpadding="0" cellspacing="0" '
            f'style="font-size:13px;border:1px solid {_BORDER};">{rows}</table>'
            + _button(f"View on {BRAND}", APP_PORTFOLIO_URL)
        )
        return _page("Transaction receipt", "Receipt", body, border=accent)

    def activity(self, activity: FormattedActivity, *, heading: str) -> str:
        liquidated = activity.type == ActivityKind.LIQUIDATED
        accent = _RED if liquidated else _GREEN
        action = activity.type.value
        detail = ""
        if activity.shares_formatted and activity.shares_formatted != MISSING:
            detail += f" <strong>{escape(activity.shares_formatted)} shares</strong>"
        if activity.assets_formatted and activity.assets_formatted != MISSING:
            detail += f" ({escape(activity.assets_formatted)})"
        rows = "".join([
            _row("Market", escape(activity.market_label)),
            _row("Action", action.upper(), accent),
            _row("Shares", escape(activity.shares_formatted)),
            _row("Value", escape(activity.assets_formatted), _CYAN),
        ])
        tx_link = ""
        if activity.tx_hash:
            tx_link = (
                f'<p style="margin:14px 0 0 0;"><a href="{_tx_url(activity.tx_hash)}" '
                f'style="font-size:11px;color:{_CYAN};">View transaction</a></p>'
            )
        body = (
            f'<p style="margin:0 0 6px 0;font-size:10px;font-weight:700;color:{_CYAN};'
            f'text-transform:uppercase;">{escape(heading)}</p>'
            '<h1 style="margin:0 0 8px 0;font-size:18px;font-weight:900;color:#ffffff;">'
            f"{escape(activity.market_label)}</h1>"
            f'<p style="margin:0 0 20px 0;font-size:14px;color:{_TEXT};">'
            f'<span style="color:{accent};font-weight:700;">{escape(activity.sender_label)}</span> '
            f"{action}{detail}.</p>"
            f'<table role="presentation" width="100%" cellpadding="0" cellspacing="0" '
            f'style="font-size:12px;border:1px solid {_BORDER};">{rows}</table>'
            + tx_link
            + _button(f"Open {BRAND}", APP_PORTFOLIO_URL)
        )
        return _page(heading, "Activity", body, border=accent)

    def digest(
        self,
        *,
        receipts: Sequence[TransactionReceipt],
        activities: Sequence[FormattedActivity],
        date_label: str,
    ) -> str:
        sections: list[str] = []
        if receipts:
            rows = "".join(
                _row(
                    escape(r.market_label),
                    f"{r.type.value.title()} &middot; {r.side.value.title()} &middot; "
                    f"{escape(r.shares_formatted)} &middot; {escape(r.assets_formatted)}",
                    _GREEN if r.type == ActivityKind.ACQUIRED else _RED,
                )
                for r in receipts
            )
            sections.append(
                f'<p style="margin:0 0 10px 0;font-size:10px;font-weight:700;color:{_CYAN};'
                'text-transform:uppercase;">Your transactions</p>'
                f'<table role="presentation" width="100%" cellpadding="0" cellspacing="0" '
                f'style="font-size:12px;border:1px solid {_BORDER};margin-bottom:24px;">{rows}</table>'
            )
        if activities:
            rows = "".join(
                _row(
                    escape(a.market_label),
                    f"{escape(a.sender_label)} &middot; {a.type.value.title()} &middot; "
                    f"{escape(a.shares_formatted)}",
                    _RED if a.type == ActivityKind.LIQUIDATED else _GREEN,
                )
                for a in activities
            )
            sections.append(
                f'<p style="margin:0 0 10px 0;font-size:10px;font-weight:700;color:{_CYAN};'
                'text-transform:uppercase;">Activity on your holdings</p>'
                f'<table role="presentation" width="100%" cellpadding="0" cellspacing="0" '
                f'style="font-size:12px;border:1px solid {_BORDER};">{rows}</table>'
            )
        if not sections:
            sections.append(
                f'<p style="margin:0;color:{_MUTED};">No new activity in this period.</p>'
            )
        body = (
            f'<p style="margin:0 0 16px 0;font-size:11px;color:{_MUTED};">{escape(date_label)}</p>'
            + "".join(sections)
            + _button(f"Open {BRAND}", APP_PORTFOLIO_URL)
        )
        return _page("Daily digest", "Daily digest", body)
