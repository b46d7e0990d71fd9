# facility_analytics/services/clv_service.py
"""
Customer lifetime value.

CLV per customer is all booking revenue plus subscription revenue, where a
subscription contributes ``monthly_amount`` times its elapsed months
(30-day months, at least one). Open-ended subscriptions run until ``as_of``.

A customer's lifespan runs from their earliest record to their latest
booking. Subscriptions can move the start earlier but never the end.
"""
import math
from datetime import date
from typing import Any, Dict, List, Optional, Sequence
import logging

from facility_analytics.schemas.records import Booking, Subscription
from facility_analytics.utils.dates import elapsed_months, parse_date, safe_pct

logger = logging.getLogger(__name__)

CLV_BUCKETS = [
    ("0-500", 0, 500),
    ("500-1K", 500, 1000),
    ("1K-2.5K", 1000, 2500),
    ("2.5K-5K", 2500, 5000),
    ("5K-10K", 5000, 10000),
    ("10K+", 10000, math.inf),
]

TOP_CUSTOMERS_LIMIT = 10
TOP_SHARE_MIN_CUSTOMERS = 10


def subscription_months(sub: Subscription, as_of: date) -> int:
    start = parse_date(sub.start_date) or parse_date(sub.created_date)
    if start is None:
        return 1
    end = parse_date(sub.end_date) or as_of
    return elapsed_months(start, end)


def customer_revenue(
    bookings: Sequence[Booking],
    subscriptions: Sequence[Subscription],
    as_of: date
) -> Dict[str, Dict[str, Any]]:
    """Booking and subscription revenue per customer id."""
    customers: Dict[str, Dict[str, Any]] = {}

    def entry(customer_id: str, seen: Optional[str]) -> Dict[str, Any]:
        if customer_id not in customers:
            customers[customer_id] = {
                "booking_revenue": 0.0,
                "subscription_revenue": 0.0,
                "booking_count": 0,
                "first_date": seen,
                "last_date": seen,
            }
        return customers[customer_id]

    for booking in bookings:
        if not booking.customer_id:
            continue
        data = entry(booking.customer_id, booking.created_date)
        data["booking_revenue"] += booking.amount
        data["booking_count"] += 1
        _widen(data, booking.created_date)

    for sub in subscriptions:
        if not sub.customer_id:
            continue
        data = entry(sub.customer_id, sub.created_date)
        data["subscription_revenue"] += sub.amount * subscription_months(sub, as_of)
        _widen(data, sub.created_date, extend_last=False)

    return customers


def _widen(data: Dict[str, Any], seen: Optional[str], extend_last: bool = True) -> None:
    if not seen:
        return
    if data["first_date"] is None or seen < data["first_date"]:
        data["first_date"] = seen
    if extend_last and (data["last_date"] is None or seen > data["last_date"]):
        data["last_date"] = seen


def _lifespan_months(first: Optional[str], last: Optional[str]) -> int:
    first_day, last_day = parse_date(first), parse_date(last)
    if first_day is None or last_day is None:
        return 1
    return elapsed_months(first_day, last_day)


def customer_lifetime_value(
    bookings: Sequence[Booking],
    subscriptions: Sequence[Subscription],
    as_of: date
) -> Dict[str, Any]:
    """
    CLV distribution, average, median and top-10% revenue share.

    ``median`` is the value at index ``n // 2`` of the list sorted by CLV
    descending. For even ``n`` this is the lower of the two middle values,
    not their mean.

    ``top_10_percent_share`` is only computed once there are at least ten
    customers; smaller samples report 0.
    """
    customers = customer_revenue(bookings, subscriptions, as_of)

    values: List[Dict[str, Any]] = [
        {
            "customer_id": customer_id,
            "total": data["booking_revenue"] + data["subscription_revenue"],
            "booking_revenue": data["booking_revenue"],
            "subscription_revenue": data["subscription_revenue"],
            "booking_count": data["booking_count"],
            "lifespan_months": _lifespan_months(data["first_date"], data["last_date"]),
        }
        for customer_id, data in customers.items()
    ]
    values.sort(key=lambda c: c["total"], reverse=True)

    buckets = [{"range": label, "count": 0} for label, _, _ in CLV_BUCKETS]
    for customer in values:
        for bucket, (_, low, high) in zip(buckets, CLV_BUCKETS):
            if low <= customer["total"] < high:
                bucket["count"] += 1
                break

    count = len(values)
    total = sum(c["total"] for c in values)
    average = total / count if count else 0.0
    median = values[count // 2]["total"] if count else 0.0

    top_share = 0.0
    if count >= TOP_SHARE_MIN_CUSTOMERS:
        top_n = math.ceil(count * 0.1)
        top_share = max(0.0, min(100.0, safe_pct(sum(c["total"] for c in values[:top_n]), total)))

    logger.debug(f"CLV computed for {count} customers")

    return {
        "customers": values,
        "top_customers": values[:TOP_CUSTOMERS_LIMIT],
        "buckets": buckets,
        "average": average,
        "median": median,
        "total_revenue": total,
        "top_10_percent_share": top_share,
        "total_customers": count,
    }
