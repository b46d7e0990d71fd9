# facility_analytics/schemas/analytics.py
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from facility_analytics.schemas.records import Booking, Package, Provider, Review, Service, Subscription


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class AnalyticsRequest(BaseModel):
    """Record snapshots plus the selected range. Missing dates default in the endpoint layer."""
    bookings: List[Booking] = Field(default_factory=list)
    subscriptions: List[Subscription] = Field(default_factory=list)
    providers: List[Provider] = Field(default_factory=list)
    services: List[Service] = Field(default_factory=list)
    packages: List[Package] = Field(default_factory=list)
    reviews: List[Review] = Field(default_factory=list)
    start_date: Optional[str] = Field(None, description="Inclusive range start, YYYY-MM-DD")
    end_date: Optional[str] = Field(None, description="Inclusive range end, YYYY-MM-DD")
    as_of: Optional[date] = Field(None, description="Reference 'today' for rolling windows")

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_iso_date(cls, v):
        if v is not None:
            date.fromisoformat(v)
        return v


class KPIDeltaRequest(BaseModel):
    current: Optional[float] = None
    previous: Optional[float] = None
    inverse: bool = False


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------

class DateRangeResponse(BaseModel):
    start_date: str
    end_date: str
    as_of: date


class KPIDelta(BaseModel):
    change: Optional[float]
    direction: str  # up | down | neutral | none
    is_positive: Optional[bool]
    label: str


# ---------------------------------------------------------------------------
# Revenue
# ---------------------------------------------------------------------------

class RevenueMonth(BaseModel):
    month_key: str
    month: str
    on_demand_revenue: float
    subscription_revenue: float
    total: float


class RevenueOverTimeResponse(BaseModel):
    range: DateRangeResponse
    series: List[RevenueMonth]


class ServiceRevenue(BaseModel):
    name: str
    revenue: float
    share: float


class PackageRevenue(BaseModel):
    name: str
    revenue: float
    count: int


class RevenueStream(BaseModel):
    name: str
    value: float


class FinancialMonth(BaseModel):
    month_key: str
    month: str
    on_demand: float
    subscriptions: float
    addons: float
    total: float
    bookings: int


class RevenueBreakdownResponse(BaseModel):
    by_service: List[ServiceRevenue]
    by_package: List[PackageRevenue]
    streams: List[RevenueStream]
    on_demand_revenue: float
    subscription_revenue: float
    total_revenue: float
    addon_revenue: float
    arr: float
    avg_booking_value: float
    monthly: List[FinancialMonth]


class PopularService(BaseModel):
    name: str
    bookings: int
    revenue: float


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

class ChurnMonth(BaseModel):
    month_key: str
    month: str
    churn_rate: float
    pause_rate: float
    cancelled: int
    paused: int
    new: int
    active_base: int


class CancelReason(BaseModel):
    reason: str
    count: int
    percentage: int


class ChurnStats(BaseModel):
    overall_churn: float
    average_churn: float
    total_cancelled: int
    total_active: int
    total_paused: int
    top_reasons: List[CancelReason]


class ChurnResponse(BaseModel):
    series: List[ChurnMonth]
    stats: ChurnStats


class GrowthMonth(BaseModel):
    month_key: str
    month: str
    new: int
    cancelled: int
    net: int
    new_mrr: float


class PackageCount(BaseModel):
    name: str
    count: int
    mrr: float


class GrowthStats(BaseModel):
    active: int
    paused: int
    cancelled: int
    total_mrr: float


class SubscriptionGrowthResponse(BaseModel):
    series: List[GrowthMonth]
    package_breakdown: List[PackageCount]
    stats: GrowthStats


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

class Cohort(BaseModel):
    month_key: str
    month: str
    size: int
    retention: List[int]


class CustomerValue(BaseModel):
    customer_id: str
    total: float
    booking_revenue: float
    subscription_revenue: float
    booking_count: int
    lifespan_months: int


class CLVBucket(BaseModel):
    range: str
    count: int


class CLVResponse(BaseModel):
    customers: List[CustomerValue]
    top_customers: List[CustomerValue]
    buckets: List[CLVBucket]
    average: float
    median: float
    total_revenue: float
    top_10_percent_share: float
    total_customers: int


class AcquisitionMonth(BaseModel):
    month_key: str
    month: str
    new_customers: int
    total_customers: int


class AcquisitionStats(BaseModel):
    total_new: int
    cac: int
    cumulative: int


class AcquisitionResponse(BaseModel):
    series: List[AcquisitionMonth]
    stats: AcquisitionStats


# ---------------------------------------------------------------------------
# Demand and technicians
# ---------------------------------------------------------------------------

class DemandPoint(BaseModel):
    period: str
    actual: Optional[int] = None
    predicted: Optional[int] = None


class ForecastPoint(BaseModel):
    period: str
    predicted: int


class StaffingRecommendation(BaseModel):
    active_techs: int
    techs_needed: int
    gap: int
    avg_per_tech: int


class TrendingService(BaseModel):
    service_id: str
    name: str
    growth: int
    recent: int


class DemandForecastResponse(BaseModel):
    granularity: str
    chart_data: List[DemandPoint]
    forecast: List[ForecastPoint]
    staffing: Optional[StaffingRecommendation]
    trending_services: List[TrendingService]
    slope: float
    intercept: float
    trend: str


class TechnicianUtilizationRow(BaseModel):
    provider_id: Optional[str]
    name: str
    full_name: str
    utilization: int
    service_hours: int
    travel_hours: int
    travel_pct: int
    total_jobs: int
    completed_jobs: int
    completion_rate: int
    rating: float


class UtilizationSummary(BaseModel):
    avg_utilization: int
    avg_travel_pct: int
    overloaded: int
    underutilized: int
    total: int


class UtilizationResponse(BaseModel):
    chart_data: List[TechnicianUtilizationRow]
    summary: Optional[UtilizationSummary]


class TechnicianPerformanceRow(BaseModel):
    provider_id: Optional[str]
    name: str
    short_name: str
    completed: int
    cancelled: int
    total: int
    rating: float
    revenue: float
    reviews: int


class TechnicianPerformanceResponse(BaseModel):
    chart_data: List[TechnicianPerformanceRow]
    top_performers: List[TechnicianPerformanceRow]


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

class ServiceCompletion(BaseModel):
    name: str
    full_name: str
    avg_time: int
    expected: int
    variance: float
    count: int


class CompletionMonth(BaseModel):
    month_key: str
    month: str
    avg_minutes: int
    jobs: int


class CompletionStats(BaseModel):
    average: int
    p90: int
    fastest: int
    slowest: int
    total: int
    on_time_rate: int


class CompletionTimeResponse(BaseModel):
    by_service: List[ServiceCompletion]
    over_time: List[CompletionMonth]
    stats: CompletionStats


class KPICard(BaseModel):
    key: str
    label: str
    value: float
    unit: str  # currency | percent | minutes | count
    subtitle: str
    current: Optional[float]
    previous: Optional[float]
    inverse: bool
    delta: Optional[KPIDelta]


class KPIResponse(BaseModel):
    range: DateRangeResponse
    kpis: List[KPICard]


class SatisfactionMonth(BaseModel):
    month_key: str
    month: str
    avg_rating: float
    csat: float
    reviews: int


class RatingBucket(BaseModel):
    rating: int
    count: int
    pct: float


class SentimentSlice(BaseModel):
    name: str
    value: int


class CompletionRateMonth(BaseModel):
    month_key: str
    month: str
    completion_pct: float
    cancellation_pct: float


class ServiceSatisfaction(BaseModel):
    name: str
    avg: float
    count: int
    csat: int


class SatisfactionResponse(BaseModel):
    trend: List[SatisfactionMonth]
    avg_rating: float
    csat: float
    nps: float
    distribution: List[RatingBucket]
    sentiment: List[SentimentSlice]
    completion_trend: List[CompletionRateMonth]
    by_service: List[ServiceSatisfaction]
    total_reviews: int


class PeakSlot(BaseModel):
    label: str
    count: int


class MonthCount(BaseModel):
    month_key: str
    count: int


class BookingPatternsResponse(BaseModel):
    heatmap: Dict[str, Dict[str, int]]
    max_value: int
    peak_hour: PeakSlot
    peak_day: PeakSlot
    total_bookings: int
    trend: float
    months: List[MonthCount]


class DashboardResponse(BaseModel):
    range: DateRangeResponse
    kpis: List[KPICard]
    revenue_over_time: List[RevenueMonth]
    revenue_breakdown: RevenueBreakdownResponse
    popular_services: List[PopularService]
    churn: ChurnResponse
    subscription_growth: SubscriptionGrowthResponse
    cohort_retention: List[Cohort]
    customer_lifetime_value: CLVResponse
    customer_acquisition: AcquisitionResponse
    demand_forecast: DemandForecastResponse
    technician_utilization: UtilizationResponse
    technician_performance: TechnicianPerformanceResponse
    completion_times: CompletionTimeResponse
    satisfaction: SatisfactionResponse
    booking_patterns: BookingPatternsResponse
    generated_at: str
