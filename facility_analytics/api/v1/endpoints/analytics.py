# facility_analytics/api/v1/endpoints/analytics.py
from datetime import date
from typing import Any, Callable, Dict, List
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from facility_analytics.api import deps
from facility_analytics.schemas.analytics import (
    AnalyticsRequest,
    BookingPatternsResponse,
    ChurnResponse,
    CLVResponse,
    Cohort,
    AcquisitionResponse,
    CompletionTimeResponse,
    DashboardResponse,
    DemandForecastResponse,
    KPIDelta,
    KPIDeltaRequest,
    KPIResponse,
    PopularService,
    RevenueBreakdownResponse,
    RevenueOverTimeResponse,
    SatisfactionResponse,
    SubscriptionGrowthResponse,
    TechnicianPerformanceResponse,
    UtilizationResponse,
)
from facility_analytics.services.analytics_service import AnalyticsService
from facility_analytics.services.demand_forecast_service import Granularity
from facility_analytics.services.kpi_service import kpi_delta

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(deps.verify_api_key)])


def _run(name: str, fn: Callable[[], Any]) -> Any:
    logger.info(f"Computing {name}")
    try:
        return fn()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing {name}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute {name}")


@router.post("/revenue-over-time", response_model=RevenueOverTimeResponse)
async def get_revenue_over_time(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    """Monthly on-demand and subscription revenue for the selected range."""
    service = AnalyticsService(request, as_of=today)
    return _run("revenue over time", lambda: {
        "range": service.range_info(),
        "series": service.revenue_over_time(),
    })


@router.post("/revenue-breakdown", response_model=RevenueBreakdownResponse)
async def get_revenue_breakdown(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("revenue breakdown", service.revenue_breakdown)


@router.post("/popular-services", response_model=List[PopularService])
async def get_popular_services(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> List[Dict[str, Any]]:
    service = AnalyticsService(request, as_of=today)
    return _run("popular services", service.popular_services)


@router.post("/churn", response_model=ChurnResponse)
async def get_churn(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    """Monthly churn and pause rates with the most common cancellation reasons."""
    service = AnalyticsService(request, as_of=today)
    return _run("churn", service.churn)


@router.post("/subscription-growth", response_model=SubscriptionGrowthResponse)
async def get_subscription_growth(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("subscription growth", service.subscription_growth)


@router.post("/cohort-retention", response_model=List[Cohort])
async def get_cohort_retention(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> List[Dict[str, Any]]:
    """Six-month retention for the six most recent first-booking cohorts."""
    service = AnalyticsService(request, as_of=today)
    return _run("cohort retention", service.cohort_retention)


@router.post("/customer-lifetime-value", response_model=CLVResponse)
async def get_customer_lifetime_value(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("customer lifetime value", service.customer_lifetime_value)


@router.post("/customer-acquisition", response_model=AcquisitionResponse)
async def get_customer_acquisition(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("customer acquisition", service.customer_acquisition)


@router.post("/demand-forecast", response_model=DemandForecastResponse)
async def get_demand_forecast(
    request: AnalyticsRequest,
    granularity: Granularity = Query(Granularity.MONTHLY),
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    """
    Linear-trend demand forecast.

    Granularity options:
    - monthly: three months ahead
    - weekly: three weeks ahead
    """
    service = AnalyticsService(request, as_of=today)
    return _run("demand forecast", lambda: service.demand_forecast(granularity))


@router.post("/technician-utilization", response_model=UtilizationResponse)
async def get_technician_utilization(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("technician utilization", service.technician_utilization)


@router.post("/technician-performance", response_model=TechnicianPerformanceResponse)
async def get_technician_performance(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("technician performance", service.technician_performance)


@router.post("/completion-times", response_model=CompletionTimeResponse)
async def get_completion_times(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("completion times", service.completion_times)


@router.post("/kpis", response_model=KPIResponse)
async def get_kpis(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    """Headline KPI cards compared with the preceding period of equal length."""
    service = AnalyticsService(request, as_of=today)
    return _run("kpis", lambda: {"range": service.range_info(), "kpis": service.kpis()})


@router.post("/kpi-delta", response_model=KPIDelta)
async def get_kpi_delta(request: KPIDeltaRequest) -> Dict[str, Any]:
    return kpi_delta(request.current, request.previous, request.inverse)


@router.post("/satisfaction", response_model=SatisfactionResponse)
async def get_satisfaction(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("satisfaction", service.satisfaction)


@router.post("/booking-patterns", response_model=BookingPatternsResponse)
async def get_booking_patterns(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    service = AnalyticsService(request, as_of=today)
    return _run("booking patterns", service.booking_patterns)


@router.post("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Dict[str, Any]:
    """Every analytics section for the admin dashboard in a single response."""
    service = AnalyticsService(request, as_of=today)
    return _run("dashboard", service.get_dashboard)
