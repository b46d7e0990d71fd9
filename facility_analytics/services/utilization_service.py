# facility_analytics/services/utilization_service.py
from datetime import date, timedelta
from typing import Any, Dict, List, Sequence
import logging

from facility_analytics.schemas.records import Booking, DateRange, Provider, Review, Service
from facility_analytics.utils.dates import parse_date, round_half_up, safe_pct

logger = logging.getLogger(__name__)

# 8 hours a day, 22 working days a month
MONTHLY_HOURS = 176
TRAVEL_MINUTES_PER_JOB = 35
DEFAULT_SERVICE_MINUTES = 60
UTILIZATION_WINDOW_DAYS = 30

OVERLOADED_THRESHOLD = 85
UNDERUTILIZED_THRESHOLD = 40

PERFORMANCE_CHART_LIMIT = 10
TOP_PERFORMERS_LIMIT = 5


def service_minutes(booking: Booking, durations: Dict[str, int]) -> int:
    return durations.get(booking.service_id) or DEFAULT_SERVICE_MINUTES


def _recent_bookings(bookings: Sequence[Booking], provider_id: str, since: date) -> List[Booking]:
    recent = []
    for booking in bookings:
        if booking.assigned_provider_id != provider_id:
            continue
        created = parse_date(booking.created_date)
        if created is not None and created >= since:
            recent.append(booking)
    return recent


def technician_load(
    provider: Provider,
    bookings: Sequence[Booking],
    durations: Dict[str, int],
    since: date
) -> Dict[str, Any]:
    """Raw (unrounded) service and travel hours for one technician since ``since``."""
    assigned = _recent_bookings(bookings, provider.id, since)
    completed = [b for b in assigned if b.is_completed]

    service_hours = sum(service_minutes(b, durations) for b in completed) / 60
    travel_hours = len(completed) * TRAVEL_MINUTES_PER_JOB / 60
    active_hours = service_hours + travel_hours

    return {
        "assigned": len(assigned),
        "completed": len(completed),
        "service_hours": service_hours,
        "travel_hours": travel_hours,
        "active_hours": active_hours,
        "utilization": min(100.0, active_hours / MONTHLY_HOURS * 100),
    }


def technician_utilization(
    providers: Sequence[Provider],
    bookings: Sequence[Booking],
    services: Sequence[Service],
    as_of: date
) -> Dict[str, Any]:
    """
    Utilization of each active technician over the last 30 days.

    Utilization is completed service time plus a fixed travel allowance per
    job, as a share of 176 working hours, capped at 100%.
    """
    if not providers:
        return {"chart_data": [], "summary": None}

    durations = {s.id: s.duration_minutes for s in services if s.duration_minutes}
    since = as_of - timedelta(days=UTILIZATION_WINDOW_DAYS)

    rows = []
    for provider in providers:
        if not provider.counts_as_active:
            continue
        load = technician_load(provider, bookings, durations, since)
        full_name = provider.full_name or "Unknown"
        rows.append({
            "provider_id": provider.id,
            "name": full_name.split(" ")[0] if provider.full_name else "Tech",
            "full_name": full_name,
            "utilization": round_half_up(load["utilization"]),
            "service_hours": round_half_up(load["service_hours"]),
            "travel_hours": round_half_up(load["travel_hours"]),
            "travel_pct": round_half_up(safe_pct(load["travel_hours"], load["active_hours"])),
            "total_jobs": load["assigned"],
            "completed_jobs": load["completed"],
            "completion_rate": round_half_up(safe_pct(load["completed"], load["assigned"])),
            "rating": provider.average_rating or 0,
        })

    rows.sort(key=lambda row: row["utilization"], reverse=True)

    count = len(rows)
    summary = {
        "avg_utilization": round_half_up(sum(r["utilization"] for r in rows) / count) if count else 0,
        "avg_travel_pct": round_half_up(sum(r["travel_pct"] for r in rows) / count) if count else 0,
        "overloaded": sum(1 for r in rows if r["utilization"] > OVERLOADED_THRESHOLD),
        "underutilized": sum(1 for r in rows if r["utilization"] < UNDERUTILIZED_THRESHOLD),
        "total": count,
    }

    logger.debug(f"Utilization computed for {count} active technicians since {since}")
    return {"chart_data": rows, "summary": summary}


def technician_performance(
    providers: Sequence[Provider],
    bookings: Sequence[Booking],
    reviews: Sequence[Review],
    date_range: DateRange
) -> Dict[str, Any]:
    """Completed / cancelled jobs, rating and paid revenue per active technician in the range."""
    in_range = [b for b in bookings if date_range.contains(b.scheduled_date)]

    stats = []
    for provider in providers:
        if not provider.is_active:
            continue
        assigned = [b for b in in_range if b.assigned_provider_id == provider.id]
        ratings = [r.rating for r in reviews if r.provider_id == provider.id]
        if ratings:
            rating = sum(ratings) / len(ratings)
        else:
            rating = provider.average_rating or 0

        full_name = provider.full_name or "Unknown"
        stats.append({
            "provider_id": provider.id,
            "name": full_name,
            "short_name": full_name[:14] + "…" if len(full_name) > 14 else full_name,
            "completed": sum(1 for b in assigned if b.is_completed),
            "cancelled": sum(1 for b in assigned if b.status == "cancelled"),
            "total": len(assigned),
            "rating": round_half_up(rating, 1),
            "revenue": sum(b.amount for b in assigned if b.is_paid),
            "reviews": len(ratings),
        })

    stats.sort(key=lambda row: row["completed"], reverse=True)
    return {
        "chart_data": stats[:PERFORMANCE_CHART_LIMIT],
        "top_performers": stats[:TOP_PERFORMERS_LIMIT],
    }
