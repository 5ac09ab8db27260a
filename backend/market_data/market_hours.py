"""
market_data/market_hours.py
────────────────────────────
US equity regular-session status (NYSE / Nasdaq, 09:30–16:00 New York
time, Monday to Friday).  Exchange holidays are not modelled.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

NEW_YORK = ZoneInfo("America/New_York")

_OPEN_MINUTES = 9 * 60 + 30
_CLOSE_MINUTES = 16 * 60


@dataclass(frozen=True)
class MarketStatus:
    status: str  # "open" | "closed"
    next_change: str
    timestamp: datetime


def _hours_minutes(total_minutes: int) -> str:
    return f"{total_minutes // 60}h {total_minutes % 60}m"


def _days_until_open(weekday: int, after_close: bool) -> int:
    """Calendar days to the next weekday session; ``weekday`` is Mon=0."""
    if weekday == 5:  # Saturday
        return 2
    if weekday == 6:  # Sunday
        return 1
    if weekday == 4 and after_close:  # Friday evening
        return 3
    return 1


def market_status(now: Optional[datetime] = None) -> MarketStatus:
    """
    Describe the regular session at ``now``.

    Args:
        now: Aware datetime (any zone); naive values are taken as UTC.
             Defaults to the current time.

    Returns:
        ``open`` with "Closes in Xh Ym", or ``closed`` with either
        "Opens in Xh Ym" (same-day pre-market) or "Opens in N day(s)".
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local = now.astimezone(NEW_YORK)
    minutes = local.hour * 60 + local.minute
    weekday = local.weekday()
    is_weekday = weekday < 5

    if is_weekday and _OPEN_MINUTES <= minutes < _CLOSE_MINUTES:
        return MarketStatus(
            status="open",
            next_change=f"Closes in {_hours_minutes(_CLOSE_MINUTES - minutes)}",
            timestamp=now,
        )

    if is_weekday and minutes < _OPEN_MINUTES:
        next_change = f"Opens in {_hours_minutes(_OPEN_MINUTES - minutes)}"
    else:
        days = _days_until_open(weekday, after_close=minutes >= _CLOSE_MINUTES)
        next_change = f"Opens in {days} day{'s' if days > 1 else ''}"

    return MarketStatus(status="closed", next_change=next_change, timestamp=now)
