# facility_analytics/services/revenue_service.py
from typing import Any, Dict, Iterator, List, Sequence
import logging

from facility_analytics.schemas.records import Booking, DateRange, Package, Service, Subscription
from facility_analytics.utils.dates import month_key, month_label, next_month, safe_pct, round_half_up

logger = logging.getLogger(__name__)

TOP_SERVICES_LIMIT = 8
MONTHS_PER_YEAR = 12


def subscription_months_in_range(sub: Subscription, date_range: DateRange) -> Iterator[str]:
    """Month keys the subscription was running, clipped to the range. Nothing without a start date."""
    start = month_key(sub.start_date)
    if start is None:
        return
    end = month_key(sub.end_date) or date_range.end_month

    current = max(start, date_range.start_month)
    last = min(end, date_range.end_month)
    while current <= last:
        yield current
        current = next_month(current)


def revenue_over_time(
    bookings: Sequence[Booking],
    subscriptions: Sequence[Subscription],
    date_range: DateRange
) -> List[Dict[str, Any]]:
    """
    Monthly on-demand vs subscription revenue within the range.

    On-demand revenue is the ``total_amount`` of paid bookings bucketed by the
    month of ``scheduled_date``. Subscription revenue adds ``monthly_amount``
    to every month the subscription was running, clipped to the range, so the
    month stepping is always bounded by the range end.
    """
    month_map: Dict[str, Dict[str, float]] = {}

    def bucket(key: str) -> Dict[str, float]:
        if key not in month_map:
            month_map[key] = {"on_demand": 0.0, "subscription": 0.0}
        return month_map[key]

    for booking in bookings:
        if not booking.is_paid or not date_range.contains(booking.scheduled_date):
            continue
        bucket(month_key(booking.scheduled_date))["on_demand"] += booking.amount

    skipped = 0
    for sub in subscriptions:
        if month_key(sub.start_date) is None:
            skipped += 1
            continue
        for key in subscription_months_in_range(sub, date_range):
            bucket(key)["subscription"] += sub.amount

    if skipped:
        logger.debug(f"Skipped {skipped} subscriptions without a start date")

    return [
        {
            "month_key": key,
            "month": month_label(key),
            "on_demand_revenue": data["on_demand"],
            "subscription_revenue": data["subscription"],
            "total": data["on_demand"] + data["subscription"],
        }
        for key, data in sorted(month_map.items())
    ]


def revenue_breakdown(
    bookings: Sequence[Booking],
    subscriptions: Sequence[Subscription],
    services: Sequence[Service],
    packages: Sequence[Package],
    date_range: DateRange
) -> Dict[str, Any]:
    """
    Paid on-demand revenue by service, active MRR by package, the revenue
    streams and a monthly financial summary.

    ``monthly`` splits paid on-demand revenue into the booking portion (net of
    ``addons_amount``) and add-ons, and adds active subscriptions for every
    month they ran inside the range. ``avg_booking_value`` is the net booking
    portion per paid booking. ``arr`` is current MRR times twelve.
    """
    service_names = {s.id: s.name for s in services}
    package_names = {p.id: p.name for p in packages}

    paid = [b for b in bookings if b.is_paid and date_range.contains(b.scheduled_date)]
    on_demand = sum(b.amount for b in paid)

    by_service: Dict[str, float] = {}
    for booking in paid:
        name = service_names.get(booking.service_id) or "Unknown"
        by_service[name] = by_service.get(name, 0.0) + booking.amount

    service_rows = sorted(
        ({"name": name, "revenue": revenue} for name, revenue in by_service.items()),
        key=lambda row: row["revenue"],
        reverse=True
    )[:TOP_SERVICES_LIMIT]
    for row in service_rows:
        row["share"] = round_half_up(safe_pct(row["revenue"], on_demand), 1)

    active = [s for s in subscriptions if s.status == "active"]
    by_package: Dict[str, Dict[str, float]] = {}
    for sub in active:
        name = package_names.get(sub.package_id) or "Unknown Package"
        entry = by_package.setdefault(name, {"revenue": 0.0, "count": 0})
        entry["revenue"] += sub.amount
        entry["count"] += 1

    package_rows = sorted(
        ({"name": name, **entry} for name, entry in by_package.items()),
        key=lambda row: row["revenue"],
        reverse=True
    )
    mrr = sum(s.amount for s in active)
    addon_revenue = sum(b.addons for b in paid)

    streams = [
        {"name": "On-Demand", "value": on_demand},
        {"name": "Subscriptions (MRR)", "value": mrr},
    ]

    return {
        "by_service": service_rows,
        "by_package": package_rows,
        "streams": [s for s in streams if s["value"] > 0],
        "on_demand_revenue": on_demand,
        "subscription_revenue": mrr,
        "total_revenue": on_demand + mrr,
        "addon_revenue": addon_revenue,
        "arr": mrr * MONTHS_PER_YEAR,
        "avg_booking_value": (on_demand - addon_revenue) / len(paid) if paid else 0.0,
        "monthly": _monthly_financials(paid, active, date_range),
    }


def popular_services(
    bookings: Sequence[Booking],
    services: Sequence[Service],
    date_range: DateRange
) -> List[Dict[str, Any]]:
    """Top services by number of bookings scheduled in the range, with their revenue."""
    service_names = {s.id: s.name for s in services}
    counts: Dict[str, Dict[str, float]] = {}

    for booking in bookings:
        if not date_range.contains(booking.scheduled_date):
            continue
        name = service_names.get(booking.service_id) or "Unknown"
        entry = counts.setdefault(name, {"bookings": 0, "revenue": 0.0})
        entry["bookings"] += 1
        entry["revenue"] += booking.amount

    rows = [{"name": name, **entry} for name, entry in counts.items()]
    rows.sort(key=lambda row: row["bookings"], reverse=True)
    return rows[:TOP_SERVICES_LIMIT]


def _monthly_financials(
    paid: Sequence[Booking],
    active: Sequence[Subscription],
    date_range: DateRange
) -> List[Dict[str, Any]]:
    month_map: Dict[str, Dict[str, float]] = {}

    def bucket(key: str) -> Dict[str, float]:
        return month_map.setdefault(key, {"on_demand": 0.0, "subscriptions": 0.0, "addons": 0.0, "bookings": 0})

    for booking in paid:
        entry = bucket(month_key(booking.scheduled_date))
        entry["on_demand"] += booking.amount - booking.addons
        entry["addons"] += booking.addons
        entry["bookings"] += 1

    for sub in active:
        for key in subscription_months_in_range(sub, date_range):
            bucket(key)["subscriptions"] += sub.amount

    return [
        {
            "month_key": key,
            "month": month_label(key),
            "on_demand": data["on_demand"],
            "subscriptions": data["subscriptions"],
            "addons": data["addons"],
            "total": data["on_demand"] + data["subscriptions"] + data["addons"],
            "bookings": data["bookings"],
        }
        for key, data in sorted(month_map.items())
    ]
