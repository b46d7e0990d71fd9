# facility_analytics/services/demand_forecast_service.py
"""
Booking demand forecast and staffing recommendation.

Bookings are counted per period (month or week). An ordinary least-squares
line over period index vs. count projects the next three periods; staffing
compares the projected demand with what the current active technicians
handled in the latest period.
"""
import math
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from facility_analytics.schemas.records import Booking, Provider, Service
from facility_analytics.utils.dates import add_months, month_key, round_half_up, week_key

logger = logging.getLogger(__name__)

FORECAST_PERIODS = 3
TRENDING_SERVICES_LIMIT = 5


class Granularity(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"


def _period_key(booking: Booking, granularity: Granularity) -> Optional[str]:
    value = booking.scheduled_date or booking.created_date
    if granularity == Granularity.WEEKLY:
        return week_key(value)
    return month_key(value)


def linear_fit(values: Sequence[float]) -> Tuple[float, float]:
    """
    Least-squares ``(slope, intercept)`` of ``values`` against their index.
    The slope is 0 when the index has no variance (fewer than two points).
    """
    n = len(values)
    if n == 0:
        return 0.0, 0.0
    x_mean = (n - 1) / 2
    y_mean = sum(values) / n

    ss_xy = 0.0
    ss_xx = 0.0
    for i, y in enumerate(values):
        ss_xy += (i - x_mean) * (y - y_mean)
        ss_xx += (i - x_mean) ** 2

    slope = ss_xy / ss_xx if ss_xx != 0 else 0.0
    return slope, y_mean - slope * x_mean


def _trend_label(slope: float) -> str:
    if slope > 0:
        return "growing"
    if slope < 0:
        return "declining"
    return "stable"


def _trending_services(
    service_periods: Dict[str, Dict[str, int]],
    services: Sequence[Service]
) -> List[Dict[str, Any]]:
    """Services ranked by the change between their two most recent period counts."""
    names = {s.id: s.name for s in services}
    growth_rows = []
    for service_id, periods in service_periods.items():
        ordered = sorted(periods.items())
        recent = ordered[-1][1]
        growth = ordered[-1][1] - ordered[-2][1] if len(ordered) >= 2 else 0
        growth_rows.append({"service_id": service_id, "growth": growth, "recent": recent})

    growth_rows.sort(key=lambda row: row["growth"], reverse=True)

    return [
        {
            "service_id": row["service_id"],
            "name": names.get(row["service_id"]) or f"Service #{row['service_id'][-5:]}",
            "growth": row["growth"],
            "recent": row["recent"],
        }
        for row in growth_rows[:TRENDING_SERVICES_LIMIT]
    ]


def demand_forecast(
    bookings: Sequence[Booking],
    services: Sequence[Service],
    providers: Sequence[Provider],
    granularity: Granularity = Granularity.MONTHLY
) -> Dict[str, Any]:
    """
    Demand history, a three-period forecast and a staffing recommendation.

    Staffing counts at least one active technician even when there are none,
    so ``active_techs`` reports 1 and ``gap`` is one lower than against an
    empty roster. Fewer than two periods yield a flat forecast with no
    staffing recommendation.
    """
    granularity = Granularity(granularity)
    period_counts: Dict[str, int] = {}
    service_periods: Dict[str, Dict[str, int]] = {}

    for booking in bookings:
        key = _period_key(booking, granularity)
        if key is None:
            continue
        period_counts[key] = period_counts.get(key, 0) + 1
        if booking.service_id:
            counts = service_periods.setdefault(booking.service_id, {})
            counts[key] = counts.get(key, 0) + 1

    ordered = sorted(period_counts.items())
    historical = [{"period": period, "actual": count, "predicted": None} for period, count in ordered]
    trending = _trending_services(service_periods, services)

    if len(ordered) < 2:
        return {
            "granularity": granularity.value,
            "chart_data": historical,
            "forecast": [],
            "staffing": None,
            "trending_services": trending,
            "slope": 0.0,
            "intercept": float(ordered[0][1]) if ordered else 0.0,
            "trend": "stable",
        }

    actuals = [count for _, count in ordered]
    n = len(actuals)
    slope, intercept = linear_fit(actuals)
    last_period = ordered[-1][0]

    forecast = []
    for step in range(1, FORECAST_PERIODS + 1):
        predicted = max(0, round_half_up(intercept + slope * (n - 1 + step)))
        if granularity == Granularity.MONTHLY:
            label = add_months(last_period, step)
        else:
            label = f"+{step}w"
        forecast.append({"period": label, "predicted": predicted})

    # Bridge point joins the actual and predicted lines on the chart
    chart_data = historical + [
        {"period": last_period, "actual": actuals[-1], "predicted": actuals[-1]}
    ] + [
        {"period": f["period"], "actual": None, "predicted": f["predicted"]} for f in forecast
    ]

    active_techs = sum(1 for p in providers if p.counts_as_active) or 1
    per_tech = actuals[-1] / active_techs
    predicted_demand = forecast[-1]["predicted"]
    techs_needed = math.ceil(predicted_demand / max(per_tech, 1))

    logger.debug(f"Demand fit over {n} {granularity.value} periods: slope={slope:.3f}")

    return {
        "granularity": granularity.value,
        "chart_data": chart_data,
        "forecast": forecast,
        "staffing": {
            "active_techs": active_techs,
            "techs_needed": techs_needed,
            "gap": techs_needed - active_techs,
            "avg_per_tech": round_half_up(per_tech),
        },
        "trending_services": trending,
        "slope": slope,
        "intercept": intercept,
        "trend": _trend_label(slope),
    }
