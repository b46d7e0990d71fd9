"""
Date helpers for the analytics aggregators.

Month keys are zero-padded ``YYYY-MM`` strings taken straight from the first
seven characters of an ISO date or timestamp. Because they are zero-padded,
plain string comparison orders them chronologically, so aggregators filter
and sort month buckets without parsing dates at all. Only elapsed-time
calculations (lifetimes, completion minutes, rolling windows) parse values.
"""
import math
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

import pytz

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

DAYS_PER_MONTH = 30


def month_key(value: Optional[str]) -> Optional[str]:
    """``'2025-01-10'`` / ``'2025-01-10T08:00:00Z'`` -> ``'2025-01'``; None when unusable."""
    if not value or len(value) < 7:
        return None
    return value[:7]


def date_part(value: Optional[str]) -> Optional[str]:
    """Strip the time portion of an ISO timestamp."""
    if not value:
        return None
    return value[:10]


def _split_key(key: str) -> Tuple[int, int]:
    year, month = key.split("-")
    return int(year), int(month)


def add_months(key: str, count: int) -> str:
    year, month = _split_key(key)
    index = year * 12 + (month - 1) + count
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def next_month(key: str) -> str:
    return add_months(key, 1)


def months_between(start_key: str, end_key: str) -> int:
    """Whole calendar months from ``start_key`` to ``end_key`` (negative if reversed)."""
    start_year, start_month = _split_key(start_key)
    end_year, end_month = _split_key(end_key)
    return (end_year - start_year) * 12 + (end_month - start_month)


def month_label(key: str) -> str:
    """``'2025-01'`` -> ``'Jan 25'``"""
    year, month = _split_key(key)
    return f"{MONTH_ABBR[month - 1]} {year % 100:02d}"


def week_key(value: Optional[str]) -> Optional[str]:
    """
    Week bucket ``YYYY-Www``. Weeks start on Sunday and week 1 is the week
    containing January 1st.
    """
    day = parse_date(value)
    if day is None:
        return None
    jan1 = date(day.year, 1, 1)
    jan1_sunday_based = (jan1.weekday() + 1) % 7
    week = math.ceil(((day - jan1).days + jan1_sunday_based + 1) / 7)
    return f"{day.year}-W{week:02d}"


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are treated as UTC."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed


def minutes_between(start: Optional[str], end: Optional[str]) -> Optional[float]:
    started = parse_datetime(start)
    finished = parse_datetime(end)
    if started is None or finished is None:
        return None
    return (finished - started).total_seconds() / 60


def elapsed_months(start: date, end: date) -> int:
    """Approximate months between two dates (30-day months), never below 1."""
    return max(1, round_half_up((end - start).days / DAYS_PER_MONTH))


def round_half_up(value: float, ndigits: int = 0):
    """Round halves towards positive infinity (2.5 -> 3, -2.5 -> -2)."""
    if ndigits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def safe_pct(numerator: float, denominator: float) -> float:
    """``numerator / denominator * 100`` or 0 when the denominator is not positive."""
    if not denominator or denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def previous_period(start_date: str, end_date: str) -> Tuple[str, str]:
    """
    The window immediately preceding ``start_date`` with the same span.

    Returns ``(previous_start, previous_end)`` where ``previous_end`` equals
    ``start_date`` and is exclusive.
    """
    start = date.fromisoformat(start_date[:10])
    end = date.fromisoformat(end_date[:10])
    span_days = max(1, (end - start).days)
    return (start - timedelta(days=span_days)).isoformat(), start.isoformat()


def today(tz_name: str = "UTC") -> date:
    return datetime.now(pytz.timezone(tz_name)).date()
