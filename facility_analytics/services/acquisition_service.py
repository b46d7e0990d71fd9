# facility_analytics/services/acquisition_service.py
from typing import Any, Dict, Sequence
import logging

from facility_analytics.schemas.records import Booking, DateRange, Subscription
from facility_analytics.utils.dates import month_key, month_label, round_half_up

logger = logging.getLogger(__name__)

# Share of on-demand revenue assumed to be spent on acquiring customers
CAC_REVENUE_SHARE = 0.1


def first_seen_months(bookings: Sequence[Booking], subscriptions: Sequence[Subscription]) -> Dict[str, str]:
    """Month each customer first appears in either bookings or subscriptions (by ``created_date``)."""
    records = [r for r in list(bookings) + list(subscriptions) if r.customer_id and month_key(r.created_date)]
    first_seen: Dict[str, str] = {}
    for record in sorted(records, key=lambda r: r.created_date):
        first_seen.setdefault(record.customer_id, month_key(record.created_date))
    return first_seen


def customer_acquisition(
    bookings: Sequence[Booking],
    subscriptions: Sequence[Subscription],
    date_range: DateRange
) -> Dict[str, Any]:
    """
    New customers per month and the running customer total.

    The running total starts from customers first seen before the range. CAC
    is a rough estimate: 10% of paid on-demand revenue in the range divided by
    the customers acquired in it.
    """
    first_seen = first_seen_months(bookings, subscriptions)

    new_by_month: Dict[str, int] = {}
    cumulative = 0
    for month in first_seen.values():
        if date_range.contains_month(month):
            new_by_month[month] = new_by_month.get(month, 0) + 1
        elif month < date_range.start_month:
            cumulative += 1

    series = []
    for key, count in sorted(new_by_month.items()):
        cumulative += count
        series.append({
            "month_key": key,
            "month": month_label(key),
            "new_customers": count,
            "total_customers": cumulative,
        })

    total_new = sum(new_by_month.values())
    revenue = sum(b.amount for b in bookings if b.is_paid and date_range.contains(b.scheduled_date))
    cac = round_half_up(revenue * CAC_REVENUE_SHARE / total_new) if total_new else 0

    return {
        "series": series,
        "stats": {"total_new": total_new, "cac": cac, "cumulative": cumulative},
    }
