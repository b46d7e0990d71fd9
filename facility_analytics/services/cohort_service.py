# facility_analytics/services/cohort_service.py
from datetime import date
from typing import Any, Dict, List, Sequence, Set
import logging

from facility_analytics.schemas.records import Booking
from facility_analytics.utils.dates import add_months, month_key, month_label, round_half_up

logger = logging.getLogger(__name__)

COHORT_COUNT = 6
MAX_OFFSET = 5


def cohort_retention(bookings: Sequence[Booking], as_of: date) -> List[Dict[str, Any]]:
    """
    Monthly customer cohorts and their retention.

    A customer's cohort is the month of their first booking (``created_date``).
    For the latest six cohorts, retention at offset ``n`` is the share of the
    cohort with any booking in cohort month + ``n``. Offsets that fall after
    ``as_of`` are not reported.
    """
    first_month: Dict[str, str] = {}
    activity: Dict[str, Set[str]] = {}

    dated = [b for b in bookings if b.customer_id and month_key(b.created_date)]
    for booking in sorted(dated, key=lambda b: b.created_date):
        key = month_key(booking.created_date)
        if booking.customer_id not in first_month:
            first_month[booking.customer_id] = key
            activity[booking.customer_id] = set()
        activity[booking.customer_id].add(key)

    current_month = as_of.strftime("%Y-%m")
    cohort_months = sorted(set(first_month.values()))[-COHORT_COUNT:]

    cohorts = []
    for cohort in cohort_months:
        members = [cid for cid, first in first_month.items() if first == cohort]
        size = len(members)
        if size == 0:
            continue

        retention = []
        for offset in range(MAX_OFFSET + 1):
            target = add_months(cohort, offset)
            if target > current_month:
                break
            retained = sum(1 for cid in members if target in activity[cid])
            retention.append(round_half_up(retained / size * 100))

        cohorts.append({
            "month_key": cohort,
            "month": month_label(cohort),
            "size": size,
            "retention": retention,
        })

    logger.debug(f"Built {len(cohorts)} cohorts from {len(dated)} dated bookings")
    return cohorts
