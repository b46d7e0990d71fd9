# facility_analytics/services/export_service.py
"""
CSV exports of the admin analytics tables.
"""
import csv
import io
from typing import Any, Dict, List, Sequence, Tuple
import logging

from facility_analytics.schemas.records import Booking, DateRange, Provider, Service, Subscription

logger = logging.getLogger(__name__)

EXPORT_TABLES = ("bookings", "subscriptions", "technicians")


def booking_rows(
    bookings: Sequence[Booking],
    services: Sequence[Service],
    providers: Sequence[Provider],
    date_range: DateRange
) -> Tuple[List[str], List[List[Any]]]:
    service_names = {s.id: s.name for s in services}
    provider_names = {p.id: p.full_name for p in providers}
    headers = ["Date", "Service", "Status", "Payment", "Amount (AED)", "Provider"]
    rows = [
        [
            b.scheduled_date,
            service_names.get(b.service_id) or "Unknown",
            b.status,
            b.payment_status,
            b.amount,
            provider_names.get(b.assigned_provider_id) or "Unassigned",
        ]
        for b in bookings
        if date_range.contains(b.scheduled_date)
    ]
    return headers, rows


def subscription_rows(subscriptions: Sequence[Subscription]) -> Tuple[List[str], List[List[Any]]]:
    headers = ["Customer ID", "Package ID", "Status", "Monthly (AED)", "Start", "End", "Auto-Renew"]
    rows = [
        [
            s.customer_id,
            s.package_id,
            s.status,
            s.monthly_amount,
            s.start_date,
            s.end_date or "N/A",
            "Yes" if s.auto_renew else "No",
        ]
        for s in subscriptions
    ]
    return headers, rows


def technician_rows(providers: Sequence[Provider]) -> Tuple[List[str], List[List[Any]]]:
    headers = ["Name", "Email", "Active", "Rating", "Jobs Completed", "Specializations"]
    rows = [
        [
            p.full_name,
            p.email,
            "Yes" if p.is_active else "No",
            p.average_rating or 0,
            p.total_jobs_completed or 0,
            "; ".join(p.specialization),
        ]
        for p in providers
    ]
    return headers, rows


def to_csv(headers: List[str], rows: List[List[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in row])
    return buffer.getvalue()


def export_filename(prefix: str, table: str, date_range: DateRange) -> str:
    return f"{prefix}_{table}_{date_range.start_date}_to_{date_range.end_date}.csv"


def export_table(table: str, records: Dict[str, Sequence[Any]], date_range: DateRange) -> str:
    """Render one export table as CSV text. ``records`` maps collection names to records."""
    if table == "bookings":
        headers, rows = booking_rows(
            records.get("bookings", []),
            records.get("services", []),
            records.get("providers", []),
            date_range
        )
    elif table == "subscriptions":
        headers, rows = subscription_rows(records.get("subscriptions", []))
    elif table == "technicians":
        headers, rows = technician_rows(records.get("providers", []))
    else:
        raise ValueError(f"Unknown export table: {table}")

    logger.info(f"Exporting {len(rows)} {table} rows")
    return to_csv(headers, rows)
