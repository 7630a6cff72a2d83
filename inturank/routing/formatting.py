"""Share and value formatting for notification text.

Amounts arrive as 18-decimal wei integer strings.  Shares are shown with
six decimals; values with compact notation and the TRUST currency sign.
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation

from inturank.models.activity import ActivityEvent, FormattedActivity

CURRENCY = "₸"
MISSING = "—"

_WEI = Decimal(10) ** 18
_COMPACT_SUFFIXES = ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K"))


def parse_units(value: str | int | None) -> float:
    """Convert a wei amount to a float of whole units.

    Strings that already contain a decimal point are taken as whole
    units.  Anything unparseable is zero.
    """
    if value is None or value == "0" or value == "":
        return 0.0
    text = str(value).strip()
    try:
        if "." in text:
            return float(text)
        return float(Decimal(int(text)) / _WEI)
    except (ValueError, InvalidOperation):
        try:
            parsed = float(text)
        except ValueError:
            return 0.0
        return 0.0 if math.isnan(parsed) else parsed


def format_market_value(value: float | str) -> str:
    """Format a unit amount: tiny values in full, large ones compact.

    >>> format_market_value(0.5)
    '0.5000'
    >>> format_market_value(1234.5)
    '1.23K'
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "0.0000"
    if math.isnan(number) or number == 0:
        return "0.0000"
    if number < 0.0001:
        return f"{number:.8f}"
    if number < 1:
        return f"{number:.4f}"
    for threshold, suffix in _COMPACT_SUFFIXES:
        if number >= threshold:
            return f"{number / threshold:.2f}{suffix}"
    return f"{number:.2f}"


def format_displayed_shares(value: str | int | float) -> str:
    """Format a share amount with six decimals."""
    if isinstance(value, float):
        return f"{value:.6f}"
    return f"{parse_units(value):.6f}"


def format_assets(value: str | None) -> str:
    """Format an asset amount as ``₸<value>``, or a dash when absent."""
    amount = parse_units(value)
    if amount <= 0:
        return MISSING
    return f"{CURRENCY}{format_market_value(amount)}"


def short_address(address: str) -> str:
    """Abbreviate an address for display when no label is known."""
    return f"{address[:6]}..." if address else "Someone"


def format_activity(
    event: ActivityEvent, sender_label: str | None = None
) -> FormattedActivity:
    """Turn a raw activity event into display-ready template fields."""
    return FormattedActivity(
        market_label=event.market_label,
        sender_label=sender_label or event.sender_label or short_address(event.sender_id),
        type=event.type,
        shares_formatted=format_displayed_shares(event.shares) if event.shares else MISSING,
        assets_formatted=format_assets(event.assets),
        tx_hash=event.tx_hash,
    )
