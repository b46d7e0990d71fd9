"""
Acquisition, completion time, satisfaction and booking pattern aggregators.
"""
import pytest

from facility_analytics.schemas.records import Booking, Review, Service, Subscription
from facility_analytics.services.acquisition_service import customer_acquisition
from facility_analytics.services.booking_patterns_service import booking_patterns, hour_label
from facility_analytics.services.completion_time_service import service_completion_times
from facility_analytics.services.satisfaction_service import satisfaction_trends


class TestCustomerAcquisition:
    def test_new_customers_and_running_total(self, jan_feb_2025):
        bookings = [
            Booking(customer_id="c0", created_date="2024-12-01T10:00:00Z"),
            Booking(customer_id="c1", created_date="2025-01-05T10:00:00Z", scheduled_date="2025-01-06",
                    payment_status="paid", total_amount=300),
        ]
        subs = [
            Subscription(customer_id="c1", created_date="2025-02-01T10:00:00Z"),
            Subscription(customer_id="c2", created_date="2025-02-10T10:00:00Z"),
        ]

        result = customer_acquisition(bookings, subs, jan_feb_2025)

        assert result["series"] == [
            {"month_key": "2025-01", "month": "Jan 25", "new_customers": 1, "total_customers": 2},
            {"month_key": "2025-02", "month": "Feb 25", "new_customers": 1, "total_customers": 3},
        ]
        assert result["stats"] == {"total_new": 2, "cac": 15, "cumulative": 3}

    def test_no_new_customers(self, jan_feb_2025):
        result = customer_acquisition([], [], jan_feb_2025)

        assert result["series"] == []
        assert result["stats"]["cac"] == 0


class TestCompletionTimes:
    def setup_method(self):
        self.services = [Service(id="svc-plumb", name="Plumbing", duration_minutes=60)]

    def test_stats(self, jan_feb_2025):
        bookings = [
            Booking(service_id="svc-plumb", status="completed", scheduled_date="2025-01-10",
                    started_at="2025-01-10T10:00:00Z", completed_at="2025-01-10T11:30:00Z"),
            Booking(service_id="svc-plumb", status="completed", scheduled_date="2025-01-12"),
            Booking(service_id="svc-plumb", status="cancelled", scheduled_date="2025-01-12"),
        ]

        result = service_completion_times(bookings, self.services, jan_feb_2025)

        assert result["stats"] == {
            "average": 75, "p90": 90, "fastest": 60, "slowest": 90, "total": 2, "on_time_rate": 50
        }
        assert result["by_service"][0]["variance"] == 25.0
        assert result["over_time"] == [{"month_key": "2025-01", "month": "Jan 25", "avg_minutes": 75, "jobs": 2}]

    def test_empty(self, jan_feb_2025):
        result = service_completion_times([], self.services, jan_feb_2025)

        assert result["stats"]["total"] == 0
        assert result["stats"]["on_time_rate"] == 0


class TestSatisfaction:
    def test_scores(self, jan_feb_2025):
        services = [Service(id="svc-ac", name="AC Maintenance")]
        bookings = [Booking(id="b1", service_id="svc-ac", scheduled_date="2025-01-09", status="completed")]
        reviews = [
            Review(booking_id="b1", rating=5, review_date="2025-01-10"),
            Review(rating=4, created_date="2025-01-12T09:00:00Z"),
            Review(rating=3, review_date="2025-02-01"),
            Review(rating=1, review_date="2025-02-02"),
            Review(rating=5, review_date="2024-11-02"),
        ]

        result = satisfaction_trends(bookings, reviews, services, jan_feb_2025)

        assert result["total_reviews"] == 4
        assert result["avg_rating"] == pytest.approx(3.25)
        assert result["csat"] == pytest.approx(50.0)
        assert result["nps"] == pytest.approx(0.0)
        assert result["distribution"][0] == {"rating": 5, "count": 1, "pct": 25.0}
        assert [s["value"] for s in result["sentiment"]] == [2, 1, 1]
        assert [m["month_key"] for m in result["trend"]] == ["2025-01", "2025-02"]
        assert result["by_service"] == [{"name": "AC Maintenance", "avg": 5.0, "count": 1, "csat": 100}]
        assert result["completion_trend"][0]["completion_pct"] == 100.0

    def test_half_star_ratings_land_in_a_sentiment_bucket(self, jan_feb_2025):
        reviews = [
            Review(rating=4.5, review_date="2025-01-10"),
            Review(rating=3.5, review_date="2025-01-11"),
            Review(rating=2.5, review_date="2025-01-12"),
        ]

        result = satisfaction_trends([], reviews, [], jan_feb_2025)

        assert [s["value"] for s in result["sentiment"]] == [1, 1, 1]
        assert sum(s["value"] for s in result["sentiment"]) == result["total_reviews"]
        assert result["csat"] == pytest.approx(100 / 3, abs=0.1)

    def test_no_reviews(self, jan_feb_2025):
        result = satisfaction_trends([], [], [], jan_feb_2025)

        assert result["avg_rating"] == 0.0
        assert result["nps"] == 0.0
        assert result["sentiment"] == []


class TestBookingPatterns:
    def test_heatmap_and_peaks(self, jan_feb_2025):
        bookings = [
            # 2025-01-06 is a Monday
            Booking(scheduled_date="2025-01-06", scheduled_time="14:00"),
            Booking(scheduled_date="2025-01-06", scheduled_time="14-16"),
            Booking(scheduled_date="2025-02-04"),
            Booking(scheduled_date="2025-02-05", scheduled_time="20:00"),
            Booking(scheduled_date="2025-02-06", scheduled_time="anytime"),
        ]

        result = booking_patterns(bookings, jan_feb_2025)

        assert result["heatmap"]["Mon"]["2pm"] == 2
        assert result["heatmap"]["Tue"]["9am"] == 1
        assert result["peak_hour"] == {"label": "2pm", "count": 2}
        assert result["peak_day"] == {"label": "Mon", "count": 2}
        assert result["max_value"] == 2
        assert result["total_bookings"] == 5
        assert result["trend"] == 50.0

    def test_empty(self, jan_feb_2025):
        result = booking_patterns([], jan_feb_2025)

        assert result["max_value"] == 0
        assert result["trend"] == 0.0
        assert result["total_bookings"] == 0

    def test_hour_labels(self):
        assert hour_label(8) == "8am"
        assert hour_label(12) == "12pm"
        assert hour_label(18) == "6pm"
