# facility_analytics/services/booking_patterns_service.py
import re
from typing import Any, Dict, Optional, Sequence
import logging

from facility_analytics.schemas.records import Booking, DateRange
from facility_analytics.utils.dates import month_key, parse_date, round_half_up

logger = logging.getLogger(__name__)

DAYS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
HOURS = tuple(range(8, 19))  # 8am .. 6pm
DEFAULT_HOUR = 9

_LEADING_HOUR = re.compile(r"^\s*(\d{1,2})")


def hour_label(hour: int) -> str:
    if hour >= 12:
        return f"{12 if hour == 12 else hour - 12}pm"
    return f"{hour}am"


def _scheduled_hour(scheduled_time: Optional[str]) -> Optional[int]:
    """Hour from ``'14:00'`` or a slot like ``'09-11'``; missing times default to 9am."""
    if not scheduled_time:
        return DEFAULT_HOUR
    match = _LEADING_HOUR.match(scheduled_time)
    return int(match.group(1)) if match else None


def booking_patterns(bookings: Sequence[Booking], date_range: DateRange) -> Dict[str, Any]:
    """Day-of-week by hour booking heatmap with peak slots and the latest month-over-month trend."""
    heatmap: Dict[str, Dict[str, int]] = {day: {hour_label(h): 0 for h in HOURS} for day in DAYS}
    month_counts: Dict[str, int] = {}
    total = 0

    for booking in bookings:
        if not date_range.contains(booking.scheduled_date):
            continue
        total += 1
        key = month_key(booking.scheduled_date)
        month_counts[key] = month_counts.get(key, 0) + 1

        day = parse_date(booking.scheduled_date)
        hour = _scheduled_hour(booking.scheduled_time)
        if day is None or hour not in HOURS:
            continue
        heatmap[DAYS[(day.weekday() + 1) % 7]][hour_label(hour)] += 1

    hour_totals = {hour_label(h): sum(heatmap[d][hour_label(h)] for d in DAYS) for h in HOURS}
    day_totals = {d: sum(heatmap[d].values()) for d in DAYS}
    max_value = max((v for row in heatmap.values() for v in row.values()), default=0)

    peak_hour = max(hour_totals.items(), key=lambda item: item[1])
    peak_day = max(day_totals.items(), key=lambda item: item[1])

    months = sorted(month_counts.items())
    trend = 0.0
    if len(months) >= 2:
        previous, latest = months[-2][1], months[-1][1]
        trend = round_half_up((latest - previous) / max(1, previous) * 100, 1)

    return {
        "heatmap": heatmap,
        "max_value": max_value,
        "peak_hour": {"label": peak_hour[0], "count": peak_hour[1]},
        "peak_day": {"label": peak_day[0], "count": peak_day[1]},
        "total_bookings": total,
        "trend": trend,
        "months": [{"month_key": k, "count": c} for k, c in months],
    }
