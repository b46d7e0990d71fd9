# facility_analytics/services/kpi_service.py
"""
Dashboard KPI cards and their period-over-period deltas.
"""
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence
import logging

from facility_analytics.schemas.records import Booking, DateRange, Provider, Service, Subscription
from facility_analytics.services.clv_service import customer_revenue
from facility_analytics.services.completion_time_service import average_completion_minutes
from facility_analytics.services.utilization_service import UTILIZATION_WINDOW_DAYS, technician_load
from facility_analytics.utils.dates import date_part, previous_period, safe_pct

logger = logging.getLogger(__name__)

NEUTRAL_THRESHOLD = 1.0
NO_TREND_LABEL = "-"


def kpi_delta(current: Optional[float], previous: Optional[float], inverse: bool = False) -> Dict[str, Any]:
    """
    Percentage change from ``previous`` to ``current``.

    ``direction`` is ``none`` when there is no previous value to compare with
    (missing or zero), ``neutral`` for changes under 1%, otherwise ``up`` or
    ``down``. With ``inverse`` set a decrease counts as the positive outcome.
    """
    if current is None or not previous:
        return {"change": None, "direction": "none", "is_positive": None, "label": NO_TREND_LABEL}

    change = (current - previous) / previous * 100
    if abs(change) < NEUTRAL_THRESHOLD:
        return {"change": change, "direction": "neutral", "is_positive": None, "label": "0%"}

    return {
        "change": change,
        "direction": "up" if change > 0 else "down",
        "is_positive": change < 0 if inverse else change > 0,
        "label": f"{abs(change):.1f}%",
    }


def _card(key, label, value, unit, subtitle, current=None, previous=None, inverse=False):
    return {
        "key": key,
        "label": label,
        "value": value,
        "unit": unit,
        "subtitle": subtitle,
        "current": current,
        "previous": previous,
        "inverse": inverse,
        "delta": kpi_delta(current, previous, inverse) if current is not None else None,
    }


def kpi_summary(
    bookings: Sequence[Booking],
    subscriptions: Sequence[Subscription],
    providers: Sequence[Provider],
    services: Sequence[Service],
    date_range: DateRange,
    as_of: date
) -> List[Dict[str, Any]]:
    """
    The eight headline KPIs for the selected range, each compared with the
    immediately preceding window of the same length.
    """
    prev_start, prev_end = previous_period(date_range.start_date, date_range.end_date)

    def in_prev(value: Optional[str]) -> bool:
        return bool(value) and prev_start <= value < prev_end

    # Revenue
    revenue = sum(b.amount for b in bookings if b.is_paid and date_range.contains(b.scheduled_date))
    revenue_prev = sum(b.amount for b in bookings if b.is_paid and in_prev(b.scheduled_date))

    # MRR
    active_subs = [s for s in subscriptions if s.status == "active"]
    mrr = sum(s.amount for s in active_subs)

    # Average CLV
    clv = customer_revenue(bookings, subscriptions, as_of)
    avg_clv = (
        sum(c["booking_revenue"] + c["subscription_revenue"] for c in clv.values()) / len(clv)
        if clv else 0.0
    )

    # Churn: the previous base reuses the current base as an approximation
    cancelled = [s for s in subscriptions if s.status == "cancelled" and s.cancelled_at]
    cancelled_now = sum(1 for s in cancelled if date_range.contains(date_part(s.cancelled_at)))
    cancelled_prev = sum(1 for s in cancelled if in_prev(date_part(s.cancelled_at)))
    churn_base = len(active_subs) + cancelled_now
    churn_rate = safe_pct(cancelled_now, churn_base)
    churn_rate_prev = safe_pct(cancelled_prev, churn_base)

    # Completion time
    completion = average_completion_minutes(bookings, services, date_range.contains)
    completion_prev = average_completion_minutes(bookings, services, in_prev)

    # Utilization
    durations = {s.id: s.duration_minutes for s in services if s.duration_minutes}
    since = as_of - timedelta(days=UTILIZATION_WINDOW_DAYS)
    active_techs = [p for p in providers if p.counts_as_active]
    utilization = (
        sum(technician_load(p, bookings, durations, since)["utilization"] for p in active_techs) / len(active_techs)
        if active_techs else 0.0
    )

    # Completed jobs and active customers
    completed_now = sum(1 for b in bookings if b.is_completed and date_range.contains(b.scheduled_date))
    completed_prev = sum(1 for b in bookings if b.is_completed and in_prev(b.scheduled_date))
    customers_now = len({b.customer_id for b in bookings if b.customer_id and date_range.contains(b.scheduled_date)})
    customers_prev = len({b.customer_id for b in bookings if b.customer_id and in_prev(b.scheduled_date)})

    logger.debug(
        f"KPI summary for {date_range.start_date}..{date_range.end_date} "
        f"against {prev_start}..{prev_end}"
    )

    return [
        _card("revenue", "Total Revenue", revenue, "currency", "In selected period",
              current=revenue, previous=revenue_prev),
        _card("mrr", "Monthly Recurring", mrr, "currency", f"{len(active_subs)} active subs"),
        _card("avg_clv", "Avg Customer LTV", avg_clv, "currency", f"{len(clv)} customers"),
        _card("churn_rate", "Churn Rate", churn_rate, "percent", f"{cancelled_now} cancelled",
              current=churn_rate, previous=churn_rate_prev, inverse=True),
        _card("avg_completion_time", "Avg Completion Time", completion["average"], "minutes",
              f"{completion['count']} jobs",
              current=completion["average"], previous=completion_prev["average"], inverse=True),
        _card("tech_utilization", "Tech Utilization", utilization, "percent",
              f"{len(active_techs)} active techs"),
        _card("completed_jobs", "Completed Jobs", completed_now, "count", "In selected period",
              current=completed_now, previous=completed_prev),
        _card("active_customers", "Active Customers", customers_now, "count", "In selected period",
              current=customers_now, previous=customers_prev),
    ]
