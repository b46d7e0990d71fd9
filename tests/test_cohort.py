from datetime import date

from facility_analytics.schemas.records import Booking
from facility_analytics.services.cohort_service import cohort_retention


def _booking(customer_id, created_date):
    return Booking(customer_id=customer_id, created_date=created_date)


class TestCohortRetention:
    def test_retention_by_offset(self):
        bookings = [
            _booking("c1", "2025-01-05T09:00:00Z"),
            _booking("c1", "2025-02-10T09:00:00Z"),
            _booking("c2", "2025-01-20T09:00:00Z"),
            _booking("c3", "2025-02-03T09:00:00Z"),
        ]

        cohorts = cohort_retention(bookings, date(2025, 3, 15))

        assert cohorts[0] == {"month_key": "2025-01", "month": "Jan 25", "size": 2, "retention": [100, 50, 0]}
        assert cohorts[1] == {"month_key": "2025-02", "month": "Feb 25", "size": 1, "retention": [100, 0]}

    def test_only_latest_six_cohorts(self):
        bookings = [_booking(f"c{m}", f"2024-{m:02d}-01") for m in range(1, 9)]

        cohorts = cohort_retention(bookings, date(2024, 12, 31))

        assert len(cohorts) == 6
        assert cohorts[0]["month_key"] == "2024-03"
        assert all(len(c["retention"]) <= 6 for c in cohorts)

    def test_unordered_input(self):
        bookings = [
            _booking("c1", "2025-02-10"),
            _booking("c1", "2025-01-05"),
        ]

        cohorts = cohort_retention(bookings, date(2025, 2, 28))

        assert [c["month_key"] for c in cohorts] == ["2025-01"]
        assert cohorts[0]["retention"] == [100, 100]

    def test_bookings_without_customer_or_date_ignored(self):
        bookings = [_booking(None, "2025-01-01"), _booking("c1", None)]

        assert cohort_retention(bookings, date(2025, 3, 1)) == []
