# facility_analytics/services/completion_time_service.py
from typing import Any, Dict, List, Sequence
import logging

from facility_analytics.schemas.records import Booking, DateRange, Service
from facility_analytics.utils.dates import minutes_between, month_key, month_label, round_half_up, safe_pct

logger = logging.getLogger(__name__)

DEFAULT_EXPECTED_MINUTES = 60
ON_TIME_TOLERANCE = 1.15
BY_SERVICE_LIMIT = 8


def expected_minutes(booking: Booking, services_by_id: Dict[str, Service]) -> int:
    service = services_by_id.get(booking.service_id)
    return (service.duration_minutes if service else None) or DEFAULT_EXPECTED_MINUTES


def actual_minutes(booking: Booking, services_by_id: Dict[str, Service]) -> float:
    """Tracked job time when both timestamps exist, otherwise the service's expected duration."""
    tracked = None
    if booking.started_at and booking.completed_at:
        tracked = minutes_between(booking.started_at, booking.completed_at)
    if tracked is None:
        return float(expected_minutes(booking, services_by_id))
    return tracked


def average_completion_minutes(
    bookings: Sequence[Booking],
    services: Sequence[Service],
    date_range_contains
) -> Dict[str, float]:
    """Average job minutes for completed bookings whose scheduled date passes ``date_range_contains``."""
    services_by_id = {s.id: s for s in services}
    times = [
        actual_minutes(b, services_by_id)
        for b in bookings
        if b.is_completed and date_range_contains(b.scheduled_date)
    ]
    return {"average": sum(times) / len(times) if times else 0.0, "count": len(times)}


def service_completion_times(
    bookings: Sequence[Booking],
    services: Sequence[Service],
    date_range: DateRange
) -> Dict[str, Any]:
    """Job duration statistics for bookings completed within the range."""
    services_by_id = {s.id: s for s in services}
    completed = [b for b in bookings if b.is_completed and date_range.contains(b.scheduled_date)]

    by_name: Dict[str, Dict[str, Any]] = {}
    by_month: Dict[str, List[float]] = {}
    all_times: List[float] = []
    on_time = 0

    for booking in completed:
        service = services_by_id.get(booking.service_id)
        name = (service.name if service else None) or "Unknown"
        expected = expected_minutes(booking, services_by_id)
        actual = actual_minutes(booking, services_by_id)

        by_name.setdefault(name, {"times": [], "expected": expected})["times"].append(actual)
        by_month.setdefault(month_key(booking.scheduled_date), []).append(actual)
        all_times.append(actual)
        if actual <= expected * ON_TIME_TOLERANCE:
            on_time += 1

    by_service = []
    for name, data in by_name.items():
        times = data["times"]
        average = sum(times) / len(times)
        by_service.append({
            "name": name[:20] + "…" if len(name) > 20 else name,
            "full_name": name,
            "avg_time": round_half_up(average),
            "expected": data["expected"],
            "variance": round_half_up(safe_pct(average - data["expected"], data["expected"]), 1),
            "count": len(times),
        })
    by_service.sort(key=lambda row: row["count"], reverse=True)

    over_time = [
        {
            "month_key": key,
            "month": month_label(key),
            "avg_minutes": round_half_up(sum(times) / len(times)),
            "jobs": len(times),
        }
        for key, times in sorted(by_month.items())
    ]

    ordered = sorted(all_times)
    count = len(ordered)
    stats = {
        "average": round_half_up(sum(ordered) / count) if count else 0,
        "p90": round_half_up(ordered[int(count * 0.9)]) if count else 0,
        "fastest": round_half_up(ordered[0]) if count else 0,
        "slowest": round_half_up(ordered[-1]) if count else 0,
        "total": count,
        "on_time_rate": round_half_up(safe_pct(on_time, count)),
    }

    return {"by_service": by_service[:BY_SERVICE_LIMIT], "over_time": over_time, "stats": stats}
