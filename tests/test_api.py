"""
HTTP surface tests.
"""
import logging
from datetime import date
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from facility_analytics.api import deps
from facility_analytics.api.v1.endpoints.analytics import get_kpi_delta
from facility_analytics.core.config import settings
from facility_analytics.main import app
from facility_analytics.schemas.analytics import KPIDeltaRequest

API_KEY = "test-analytics-key"

SAMPLE_PAYLOAD = {
    "bookings": [
        {"id": "b1", "customer_id": "c1", "service_id": "svc-ac", "assigned_provider_id": "p1",
         "scheduled_date": "2025-01-10", "scheduled_time": "10:00", "status": "completed",
         "payment_status": "paid", "total_amount": 100, "created_date": "2025-01-05T08:00:00Z",
         "started_at": "2025-01-10T10:00:00Z", "completed_at": "2025-01-10T11:20:00Z"},
        {"id": "b2", "customer_id": "c2", "service_id": "svc-plumb", "assigned_provider_id": "p2",
         "scheduled_date": "2025-02-10", "scheduled_time": "14:00", "status": "completed",
         "payment_status": "paid", "total_amount": 200, "created_date": "2025-02-01T08:00:00Z"},
    ],
    "subscriptions": [
        {"id": "s1", "customer_id": "c3", "package_id": "gold", "status": "active",
         "monthly_amount": 300, "start_date": "2024-11-01", "created_date": "2024-11-01T00:00:00Z"},
        {"id": "s2", "customer_id": "c4", "package_id": "gold", "status": "cancelled",
         "monthly_amount": 300, "start_date": "2024-10-01", "cancelled_at": "2025-01-20T00:00:00Z",
         "cancel_reason": "Moving"},
    ],
    "providers": [
        {"id": "p1", "full_name": "Omar Haddad", "is_active": True, "average_rating": 4.6,
         "specialization": ["ac"]},
        {"id": "p2", "full_name": "Ravi Kumar", "is_active": True, "specialization": None},
    ],
    "services": [
        {"id": "svc-ac", "name": "AC Maintenance", "duration_minutes": 90},
        {"id": "svc-plumb", "name": "Plumbing", "duration_minutes": 60},
    ],
    "packages": [{"id": "gold", "name": "Gold"}],
    "reviews": [
        {"id": "r1", "provider_id": "p1", "booking_id": "b1", "rating": 5, "review_date": "2025-01-11"},
    ],
    "start_date": "2025-01-01",
    "end_date": "2025-02-28",
}


class TestAnalyticsAPI:
    def setup_method(self):
        app.dependency_overrides[deps.get_today] = lambda: date(2025, 3, 1)
        self.client = TestClient(app)
        self.headers = {"X-API-Key": API_KEY}

    def teardown_method(self):
        app.dependency_overrides.clear()

    def test_health(self):
        response = self.client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_missing_api_key(self):
        response = self.client.post("/api/v1/analytics/churn", json=SAMPLE_PAYLOAD)

        assert response.status_code == 401
        assert response.json()["detail"] == "X-API-Key header required for analytics"

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_wrong_api_key(self):
        response = self.client.post("/api/v1/analytics/churn", json=SAMPLE_PAYLOAD,
                                    headers={"X-API-Key": "nope"})

        assert response.status_code == 403
        assert response.json()["detail"] == "X-API-Key does not match this analytics service"

    @patch.object(settings, "ANALYTICS_API_KEY", None)
    def test_unconfigured_key_allows_requests(self):
        response = self.client.post("/api/v1/analytics/churn", json=SAMPLE_PAYLOAD)

        assert response.status_code == 200

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_revenue_over_time(self):
        response = self.client.post("/api/v1/analytics/revenue-over-time", json=SAMPLE_PAYLOAD,
                                    headers=self.headers)

        assert response.status_code == 200
        data = response.json()
        assert data["range"] == {"start_date": "2025-01-01", "end_date": "2025-02-28", "as_of": "2025-03-01"}
        assert [p["month"] for p in data["series"]] == ["Jan 25", "Feb 25"]
        assert [p["on_demand_revenue"] for p in data["series"]] == [100, 200]
        # s1 is active all range, s2 has no end date so it also counts
        assert [p["subscription_revenue"] for p in data["series"]] == [600, 600]

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_default_range_is_year_to_today(self):
        payload = {k: v for k, v in SAMPLE_PAYLOAD.items() if k not in ("start_date", "end_date")}

        response = self.client.post("/api/v1/analytics/kpis", json=payload, headers=self.headers)

        assert response.status_code == 200
        data = response.json()
        assert data["range"]["start_date"] == "2024-03-01"
        assert data["range"]["end_date"] == "2025-03-01"
        assert len(data["kpis"]) == 8

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_as_of_in_body_wins(self):
        payload = dict(SAMPLE_PAYLOAD, as_of="2025-02-15")

        response = self.client.post("/api/v1/analytics/cohort-retention", json=payload, headers=self.headers)

        assert response.status_code == 200
        assert [c["retention"] for c in response.json()] == [[100, 0], [100]]

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_invalid_date_rejected(self):
        payload = dict(SAMPLE_PAYLOAD, start_date="2025-13-01")

        response = self.client.post("/api/v1/analytics/churn", json=payload, headers=self.headers)

        assert response.status_code == 422

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_demand_forecast_granularity(self):
        url = "/api/v1/analytics/demand-forecast"

        weekly = self.client.post(f"{url}?granularity=weekly", json=SAMPLE_PAYLOAD, headers=self.headers)
        invalid = self.client.post(f"{url}?granularity=daily", json=SAMPLE_PAYLOAD, headers=self.headers)

        assert weekly.status_code == 200
        assert weekly.json()["granularity"] == "weekly"
        assert invalid.status_code == 422

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_empty_providers_utilization(self):
        payload = dict(SAMPLE_PAYLOAD, providers=[])

        response = self.client.post("/api/v1/analytics/technician-utilization", json=payload,
                                    headers=self.headers)

        assert response.status_code == 200
        assert response.json() == {"chart_data": [], "summary": None}

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_dashboard(self):
        response = self.client.post("/api/v1/analytics/dashboard", json=SAMPLE_PAYLOAD, headers=self.headers)

        assert response.status_code == 200
        data = response.json()
        for section in ("kpis", "revenue_over_time", "churn", "cohort_retention", "customer_lifetime_value",
                        "demand_forecast", "technician_utilization", "completion_times", "satisfaction",
                        "booking_patterns", "generated_at"):
            assert section in data
        assert data["churn"]["stats"]["top_reasons"][0]["reason"] == "moving"

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_empty_request(self):
        response = self.client.post("/api/v1/analytics/dashboard", json={}, headers=self.headers)

        assert response.status_code == 200
        assert response.json()["technician_utilization"]["summary"] is None

    @patch.object(settings, "ANALYTICS_API_KEY", None)
    def test_unexpected_error_returns_500(self):
        with patch("facility_analytics.api.v1.endpoints.analytics.AnalyticsService.churn",
                   side_effect=RuntimeError("boom")):
            response = self.client.post("/api/v1/analytics/churn", json=SAMPLE_PAYLOAD)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to compute churn"

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_kpi_delta_endpoint(self):
        response = self.client.post("/api/v1/analytics/kpi-delta",
                                    json={"current": 5, "previous": 10, "inverse": True},
                                    headers=self.headers)

        assert response.status_code == 200
        assert response.json()["direction"] == "down"
        assert response.json()["is_positive"] is True


class TestExportAPI:
    def setup_method(self):
        app.dependency_overrides[deps.get_today] = lambda: date(2025, 3, 1)
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    @patch.object(settings, "ANALYTICS_API_KEY", None)
    @patch.object(settings, "EXPORT_FILE_PREFIX", "INAYA")
    def test_bookings_csv(self):
        response = self.client.post("/api/v1/exports/bookings.csv", json=SAMPLE_PAYLOAD)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "INAYA_bookings_2025-01-01_to_2025-02-28.csv" in response.headers["content-disposition"]
        assert response.text.splitlines()[0].startswith("Date,Service")

    @patch.object(settings, "ANALYTICS_API_KEY", None)
    def test_unknown_table(self):
        response = self.client.post("/api/v1/exports/payments.csv", json=SAMPLE_PAYLOAD)

        assert response.status_code == 404


class TestEndpointFunctions:
    """Endpoint coroutines can be awaited directly."""

    @pytest.mark.asyncio
    async def test_kpi_delta(self):
        result = await get_kpi_delta(KPIDeltaRequest(current=120, previous=100))

        assert result["direction"] == "up"
        assert result["label"] == "20.0%"


class TestVerifyApiKey:
    @patch.object(settings, "ANALYTICS_API_KEY", None)
    def test_open_access_warned_once(self, monkeypatch, caplog):
        monkeypatch.setattr(deps, "_open_access_logged", False)

        with caplog.at_level(logging.WARNING, logger=deps.logger.name):
            assert deps.verify_api_key(None) is True
            assert deps.verify_api_key("anything") is True

        warnings = [r for r in caplog.records if r.name == deps.logger.name]
        assert len(warnings) == 1
        assert "without authentication" in warnings[0].getMessage()

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_matching_key_accepted(self):
        assert deps.verify_api_key(API_KEY) is True

    @patch.object(settings, "ANALYTICS_API_KEY", API_KEY)
    def test_non_ascii_key_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            deps.verify_api_key("clé-analytics")

        assert exc_info.value.status_code == 403
