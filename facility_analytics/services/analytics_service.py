# facility_analytics/services/analytics_service.py
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import pytz

from facility_analytics.core.config import settings
from facility_analytics.core.enhanced_logging import get_enhanced_logger, logging_context
from facility_analytics.schemas.analytics import AnalyticsRequest
from facility_analytics.schemas.records import DateRange
from facility_analytics.services.acquisition_service import customer_acquisition
from facility_analytics.services.booking_patterns_service import booking_patterns
from facility_analytics.services.churn_service import churn_analysis, subscription_growth
from facility_analytics.services.clv_service import customer_lifetime_value
from facility_analytics.services.cohort_service import cohort_retention
from facility_analytics.services.completion_time_service import service_completion_times
from facility_analytics.services.demand_forecast_service import Granularity, demand_forecast
from facility_analytics.services.export_service import export_table
from facility_analytics.services.kpi_service import kpi_summary
from facility_analytics.services.revenue_service import popular_services, revenue_breakdown, revenue_over_time
from facility_analytics.services.satisfaction_service import satisfaction_trends
from facility_analytics.services.utilization_service import technician_performance, technician_utilization
from facility_analytics.utils.dates import today

logger = get_enhanced_logger(__name__)

DEFAULT_RANGE_DAYS = 365


def resolve_range(
    start_date: Optional[str],
    end_date: Optional[str],
    as_of: date
) -> DateRange:
    """Fill a missing range end with ``as_of`` and a missing start with one year earlier."""
    end = end_date or as_of.isoformat()
    if start_date:
        start = start_date
    else:
        end_day = date.fromisoformat(end)
        try:
            start = end_day.replace(year=end_day.year - 1).isoformat()
        except ValueError:  # Feb 29
            start = (end_day - timedelta(days=DEFAULT_RANGE_DAYS)).isoformat()
    return DateRange(start_date=start, end_date=end)


class AnalyticsService:
    """Runs the analytics aggregators over one request's record snapshots"""

    def __init__(self, request: AnalyticsRequest, as_of: Optional[date] = None):
        self.data = request
        self.as_of = request.as_of or as_of or today(settings.TIMEZONE)
        self.date_range = resolve_range(request.start_date, request.end_date, self.as_of)

    def range_info(self) -> Dict[str, Any]:
        return {
            "start_date": self.date_range.start_date,
            "end_date": self.date_range.end_date,
            "as_of": self.as_of,
        }

    def revenue_over_time(self) -> List[Dict[str, Any]]:
        return revenue_over_time(self.data.bookings, self.data.subscriptions, self.date_range)

    def revenue_breakdown(self) -> Dict[str, Any]:
        return revenue_breakdown(
            self.data.bookings, self.data.subscriptions, self.data.services,
            self.data.packages, self.date_range
        )

    def popular_services(self) -> List[Dict[str, Any]]:
        return popular_services(self.data.bookings, self.data.services, self.date_range)

    def churn(self) -> Dict[str, Any]:
        return churn_analysis(self.data.subscriptions, self.date_range)

    def subscription_growth(self) -> Dict[str, Any]:
        return subscription_growth(self.data.subscriptions, self.data.packages, self.date_range)

    def cohort_retention(self) -> List[Dict[str, Any]]:
        return cohort_retention(self.data.bookings, self.as_of)

    def customer_lifetime_value(self) -> Dict[str, Any]:
        return customer_lifetime_value(self.data.bookings, self.data.subscriptions, self.as_of)

    def customer_acquisition(self) -> Dict[str, Any]:
        return customer_acquisition(self.data.bookings, self.data.subscriptions, self.date_range)

    def demand_forecast(self, granularity: Granularity = Granularity.MONTHLY) -> Dict[str, Any]:
        return demand_forecast(self.data.bookings, self.data.services, self.data.providers, granularity)

    def technician_utilization(self) -> Dict[str, Any]:
        return technician_utilization(self.data.providers, self.data.bookings, self.data.services, self.as_of)

    def technician_performance(self) -> Dict[str, Any]:
        return technician_performance(self.data.providers, self.data.bookings, self.data.reviews, self.date_range)

    def completion_times(self) -> Dict[str, Any]:
        return service_completion_times(self.data.bookings, self.data.services, self.date_range)

    def kpis(self) -> List[Dict[str, Any]]:
        return kpi_summary(
            self.data.bookings, self.data.subscriptions, self.data.providers,
            self.data.services, self.date_range, self.as_of
        )

    def satisfaction(self) -> Dict[str, Any]:
        return satisfaction_trends(self.data.bookings, self.data.reviews, self.data.services, self.date_range)

    def booking_patterns(self) -> Dict[str, Any]:
        return booking_patterns(self.data.bookings, self.date_range)

    def export(self, table: str) -> str:
        records = {
            "bookings": self.data.bookings,
            "subscriptions": self.data.subscriptions,
            "providers": self.data.providers,
            "services": self.data.services,
        }
        return export_table(table, records, self.date_range)

    def get_dashboard(self) -> Dict[str, Any]:
        """Every aggregator for the request in one payload"""
        with logging_context(
            start_date=self.date_range.start_date,
            end_date=self.date_range.end_date,
            bookings=len(self.data.bookings),
            subscriptions=len(self.data.subscriptions)
        ):
            logger.info("Building analytics dashboard")
            dashboard = {
                "range": self.range_info(),
                "kpis": self.kpis(),
                "revenue_over_time": self.revenue_over_time(),
                "revenue_breakdown": self.revenue_breakdown(),
                "popular_services": self.popular_services(),
                "churn": self.churn(),
                "subscription_growth": self.subscription_growth(),
                "cohort_retention": self.cohort_retention(),
                "customer_lifetime_value": self.customer_lifetime_value(),
                "customer_acquisition": self.customer_acquisition(),
                "demand_forecast": self.demand_forecast(),
                "technician_utilization": self.technician_utilization(),
                "technician_performance": self.technician_performance(),
                "completion_times": self.completion_times(),
                "satisfaction": self.satisfaction(),
                "booking_patterns": self.booking_patterns(),
                "generated_at": datetime.now(pytz.utc).isoformat(),
            }
            logger.info("Analytics dashboard built")
        return dashboard
