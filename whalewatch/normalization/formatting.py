"""Display helpers for amounts, addresses and relative times."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def shorten_address(address: Optional[str], start_length: int = 6, end_length: int = 4) -> Optional[str]:
    """Abbreviate a long address as `head...tail`; short values pass through."""
    if not address or len(address) <= start_length + end_length:
        return address
    return f"{address[:start_length]}...{address[-end_length:]}"


def format_amount(amount: Optional[float], decimals: int = 2) -> str:
    """Format with thousands separators and a fixed number of decimals."""
    if amount is None or amount != amount:  # NaN
        return "0"
    return f"{amount:,.{decimals}f}"


def format_usd(amount: float) -> str:
    """Compact USD: $1.50M, $250.00K, $999.00."""
    if amount >= 1_000_000:
        return f"${format_amount(amount / 1_000_000, 2)}M"
    if amount >= 1_000:
        return f"${format_amount(amount / 1_000, 2)}K"
    return f"${format_amount(amount, 2)}"


def format_time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    """
    Describe how long ago `moment` was.

    Under a minute is "just now"; a week or more falls back to the date.
    Naive datetimes are assumed to be UTC.
    """
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((now - moment).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if seconds < 60:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    if days < 7:
        return f"{days} day{'s' if days != 1 else ''} ago"
    return moment.date().isoformat()
