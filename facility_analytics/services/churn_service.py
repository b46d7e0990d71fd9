# facility_analytics/services/churn_service.py
from typing import Any, Dict, List, Sequence
import logging

from facility_analytics.schemas.records import DateRange, Package, Subscription
from facility_analytics.utils.dates import month_key, month_label, round_half_up, safe_pct

logger = logging.getLogger(__name__)

TOP_REASONS_LIMIT = 5


def _subscription_events(subscriptions: Sequence[Subscription]) -> Dict[str, Dict[str, int]]:
    """New / cancelled / paused counts keyed by month."""
    month_map: Dict[str, Dict[str, int]] = {}

    def bump(key, field):
        if key is None:
            return
        entry = month_map.setdefault(key, {"new": 0, "cancelled": 0, "paused": 0})
        entry[field] += 1

    for sub in subscriptions:
        bump(month_key(sub.start_date), "new")
        if sub.status == "cancelled":
            bump(month_key(sub.cancelled_at), "cancelled")
        if sub.status == "paused":
            bump(month_key(sub.paused_at), "paused")

    return month_map


def _active_before(subscriptions: Sequence[Subscription], start_month: str) -> int:
    """Subscribers already running when the range opens."""
    active = 0
    for sub in subscriptions:
        started = month_key(sub.start_date)
        if started is None or started >= start_month:
            continue
        if sub.status in ("active", "paused"):
            active += 1
        elif sub.status == "cancelled":
            cancelled = month_key(sub.cancelled_at)
            if cancelled is not None and cancelled >= start_month:
                active += 1
    return active


def top_cancel_reasons(subscriptions: Sequence[Subscription], limit: int = TOP_REASONS_LIMIT) -> List[Dict[str, Any]]:
    """Most frequent cancellation reasons, normalised to lowercase and trimmed."""
    reasons: Dict[str, int] = {}
    for sub in subscriptions:
        if not sub.cancel_reason:
            continue
        reason = sub.cancel_reason.lower().strip()
        if not reason:
            continue
        reasons[reason] = reasons.get(reason, 0) + 1

    ranked = sorted(reasons.items(), key=lambda item: item[1], reverse=True)[:limit]
    return [{"reason": reason, "count": count} for reason, count in ranked]


def churn_analysis(subscriptions: Sequence[Subscription], date_range: DateRange) -> Dict[str, Any]:
    """
    Monthly churn and pause rates within the range.

    The active base starts from subscriptions running before the range and is
    carried forward month by month (new minus cancelled, never below zero).
    Each month's churn rate is ``cancelled / max(1, active + cancelled)``.
    """
    month_map = _subscription_events(subscriptions)
    active = _active_before(subscriptions, date_range.start_month)

    series = []
    for key in sorted(k for k in month_map if date_range.contains_month(k)):
        counts = month_map[key]
        active = max(0, active + counts["new"] - counts["cancelled"])
        base = max(1, active + counts["cancelled"])
        series.append({
            "month_key": key,
            "month": month_label(key),
            "churn_rate": round_half_up(counts["cancelled"] / base * 100, 1),
            "pause_rate": round_half_up(min(counts["paused"], base) / base * 100, 1),
            "cancelled": counts["cancelled"],
            "paused": counts["paused"],
            "new": counts["new"],
            "active_base": active,
        })

    total_cancelled = sum(1 for s in subscriptions if s.status == "cancelled")
    total_active = sum(1 for s in subscriptions if s.status == "active")
    total_paused = sum(1 for s in subscriptions if s.status == "paused")

    overall = round_half_up(safe_pct(total_cancelled, total_active + total_cancelled), 1)
    average = round_half_up(sum(p["churn_rate"] for p in series) / len(series), 1) if series else 0.0

    reasons = top_cancel_reasons(subscriptions)
    for entry in reasons:
        entry["percentage"] = round_half_up(safe_pct(entry["count"], total_cancelled))

    logger.debug(f"Churn analysis over {len(subscriptions)} subscriptions, {len(series)} months")

    return {
        "series": series,
        "stats": {
            "overall_churn": overall,
            "average_churn": average,
            "total_cancelled": total_cancelled,
            "total_active": total_active,
            "total_paused": total_paused,
            "top_reasons": reasons,
        },
    }


def subscription_growth(
    subscriptions: Sequence[Subscription],
    packages: Sequence[Package],
    date_range: DateRange
) -> Dict[str, Any]:
    """Net new subscriptions per month plus the active package mix."""
    month_map: Dict[str, Dict[str, float]] = {}

    for sub in subscriptions:
        started = month_key(sub.start_date)
        if date_range.contains_month(started):
            entry = month_map.setdefault(started, {"new": 0, "cancelled": 0, "mrr": 0.0})
            entry["new"] += 1
            if sub.status == "active":
                entry["mrr"] += sub.amount
        if sub.status == "cancelled":
            cancelled = month_key(sub.cancelled_at)
            if date_range.contains_month(cancelled):
                entry = month_map.setdefault(cancelled, {"new": 0, "cancelled": 0, "mrr": 0.0})
                entry["cancelled"] += 1

    series = [
        {
            "month_key": key,
            "month": month_label(key),
            "new": data["new"],
            "cancelled": data["cancelled"],
            "net": data["new"] - data["cancelled"],
            "new_mrr": data["mrr"],
        }
        for key, data in sorted(month_map.items())
    ]

    package_names = {p.id: p.name for p in packages}
    active = [s for s in subscriptions if s.status == "active"]
    by_package: Dict[str, Dict[str, float]] = {}
    for sub in active:
        name = package_names.get(sub.package_id) or "Unknown"
        entry = by_package.setdefault(name, {"count": 0, "mrr": 0.0})
        entry["count"] += 1
        entry["mrr"] += sub.amount

    package_breakdown = sorted(
        ({"name": name, **entry} for name, entry in by_package.items()),
        key=lambda row: row["count"],
        reverse=True
    )

    return {
        "series": series,
        "package_breakdown": package_breakdown,
        "stats": {
            "active": len(active),
            "paused": sum(1 for s in subscriptions if s.status == "paused"),
            "cancelled": sum(1 for s in subscriptions if s.status == "cancelled"),
            "total_mrr": sum(s.amount for s in active),
        },
    }
