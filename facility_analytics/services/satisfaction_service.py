# facility_analytics/services/satisfaction_service.py
from typing import Any, Dict, List, Sequence
import logging

from facility_analytics.schemas.records import Booking, DateRange, Review, Service
from facility_analytics.utils.dates import month_key, month_label, round_half_up, safe_pct

logger = logging.getLogger(__name__)

POSITIVE_MIN_RATING = 4
NEUTRAL_RATING = 3
DETRACTOR_MAX_RATING = 2


def _sentiment_counts(ratings: Sequence[float]) -> Dict[str, int]:
    return {
        "positive": sum(1 for r in ratings if r >= POSITIVE_MIN_RATING),
        "neutral": sum(1 for r in ratings if NEUTRAL_RATING <= r < POSITIVE_MIN_RATING),
        "negative": sum(1 for r in ratings if r < NEUTRAL_RATING),
    }


def satisfaction_trends(
    bookings: Sequence[Booking],
    reviews: Sequence[Review],
    services: Sequence[Service],
    date_range: DateRange
) -> Dict[str, Any]:
    """
    Review ratings over time, CSAT, an NPS-style score and booking completion trends.

    CSAT is the share of 4-5 star reviews. The NPS-style score is the share of
    5 star reviews minus the share of 1-2 star reviews.
    """
    in_range = [r for r in reviews if date_range.contains(r.reviewed_on)]

    by_month: Dict[str, List[float]] = {}
    for review in in_range:
        by_month.setdefault(month_key(review.reviewed_on), []).append(review.rating)

    trend = []
    for key, ratings in sorted(by_month.items()):
        sentiment = _sentiment_counts(ratings)
        trend.append({
            "month_key": key,
            "month": month_label(key),
            "avg_rating": round_half_up(sum(ratings) / len(ratings), 2),
            "csat": round_half_up(safe_pct(sentiment["positive"], len(ratings)), 1),
            "reviews": len(ratings),
        })

    ratings = [r.rating for r in in_range]
    count = len(ratings)
    sentiment = _sentiment_counts(ratings)
    promoters = sum(1 for r in ratings if r == 5)
    detractors = sum(1 for r in ratings if r <= DETRACTOR_MAX_RATING)

    distribution = []
    for stars in (5, 4, 3, 2, 1):
        matching = sum(1 for r in ratings if r == stars)
        distribution.append({"rating": stars, "count": matching, "pct": safe_pct(matching, count)})

    sentiment_split = [
        {"name": "Positive (4-5★)", "value": sentiment["positive"]},
        {"name": "Neutral (3★)", "value": sentiment["neutral"]},
        {"name": "Negative (1-2★)", "value": sentiment["negative"]},
    ]

    completion_months: Dict[str, Dict[str, int]] = {}
    for booking in bookings:
        if not date_range.contains(booking.scheduled_date):
            continue
        entry = completion_months.setdefault(
            month_key(booking.scheduled_date), {"total": 0, "completed": 0, "cancelled": 0}
        )
        entry["total"] += 1
        if booking.is_completed:
            entry["completed"] += 1
        if booking.status == "cancelled":
            entry["cancelled"] += 1

    completion_trend = [
        {
            "month_key": key,
            "month": month_label(key),
            "completion_pct": round_half_up(safe_pct(d["completed"], d["total"]), 1),
            "cancellation_pct": round_half_up(safe_pct(d["cancelled"], d["total"]), 1),
        }
        for key, d in sorted(completion_months.items())
    ]

    bookings_by_id = {b.id: b for b in bookings if b.id}
    service_names = {s.id: s.name for s in services}
    service_ratings: Dict[str, List[float]] = {}
    for review in in_range:
        booking = bookings_by_id.get(review.booking_id) if review.booking_id else None
        if booking is None:
            continue
        name = service_names.get(booking.service_id)
        if not name:
            continue
        service_ratings.setdefault(name, []).append(review.rating)

    by_service = sorted(
        (
            {
                "name": name,
                "avg": round_half_up(sum(values) / len(values), 1),
                "count": len(values),
                "csat": round_half_up(safe_pct(sum(1 for v in values if v >= POSITIVE_MIN_RATING), len(values))),
            }
            for name, values in service_ratings.items()
        ),
        key=lambda row: row["avg"],
        reverse=True
    )

    return {
        "trend": trend,
        "avg_rating": sum(ratings) / count if count else 0.0,
        "csat": safe_pct(sentiment["positive"], count),
        "nps": safe_pct(promoters, count) - safe_pct(detractors, count),
        "distribution": distribution,
        "sentiment": [s for s in sentiment_split if s["value"] > 0],
        "completion_trend": completion_trend,
        "by_service": by_service,
        "total_reviews": count,
    }
