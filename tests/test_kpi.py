from datetime import date

import pytest

from facility_analytics.schemas.records import Booking, DateRange, Subscription
from facility_analytics.services.kpi_service import kpi_delta, kpi_summary


class TestKPIDelta:
    def test_increase(self):
        delta = kpi_delta(110, 100)

        assert delta["change"] == pytest.approx(10.0)
        assert delta["direction"] == "up"
        assert delta["is_positive"] is True
        assert delta["label"] == "10.0%"

    def test_inverse_metric_decrease_is_positive(self):
        delta = kpi_delta(90, 100, inverse=True)

        assert delta["direction"] == "down"
        assert delta["is_positive"] is True

    def test_small_change_is_neutral(self):
        delta = kpi_delta(100.5, 100)

        assert delta["direction"] == "neutral"
        assert delta["label"] == "0%"

    @pytest.mark.parametrize("previous", [0, None])
    def test_no_previous_value(self, previous):
        delta = kpi_delta(50, previous)

        assert delta["direction"] == "none"
        assert delta["change"] is None
        assert delta["label"] == "-"


class TestKPISummary:
    def setup_method(self):
        self.date_range = DateRange(start_date="2025-02-01", end_date="2025-02-28")
        self.as_of = date(2025, 2, 28)

    def test_cards(self):
        bookings = [
            Booking(customer_id="c1", scheduled_date="2025-02-10", status="completed",
                    payment_status="paid", total_amount=200),
            Booking(customer_id="c2", scheduled_date="2025-01-20", status="completed",
                    payment_status="paid", total_amount=100),
            Booking(customer_id=None, scheduled_date="2025-02-11", status="pending"),
        ]
        subs = [Subscription(customer_id="c3", status="active", monthly_amount=300, start_date="2025-01-01")]

        cards = kpi_summary(bookings, subs, [], [], self.date_range, self.as_of)
        by_key = {card["key"]: card for card in cards}

        assert [card["key"] for card in cards] == [
            "revenue", "mrr", "avg_clv", "churn_rate",
            "avg_completion_time", "tech_utilization", "completed_jobs", "active_customers",
        ]
        assert by_key["revenue"]["value"] == 200
        assert by_key["revenue"]["delta"]["label"] == "100.0%"
        assert by_key["mrr"]["value"] == 300
        assert by_key["mrr"]["delta"] is None
        assert by_key["churn_rate"]["inverse"] is True
        assert by_key["completed_jobs"]["delta"]["direction"] == "neutral"
        assert by_key["active_customers"]["value"] == 1
        assert by_key["tech_utilization"]["value"] == 0.0

    def test_empty_inputs(self):
        cards = kpi_summary([], [], [], [], self.date_range, self.as_of)

        assert all(card["value"] == 0 for card in cards)
        assert all(card["delta"] is None or card["delta"]["direction"] == "none" for card in cards)
