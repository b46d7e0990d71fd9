# facility_analytics/api/v1/endpoints/exports.py
from datetime import date
import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from facility_analytics.api import deps
from facility_analytics.core.config import settings
from facility_analytics.schemas.analytics import AnalyticsRequest
from facility_analytics.services.analytics_service import AnalyticsService
from facility_analytics.services.export_service import EXPORT_TABLES, export_filename

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(deps.verify_api_key)])


@router.post("/{table}.csv")
async def export_csv(
    table: str,
    request: AnalyticsRequest,
    today: date = Depends(deps.get_today)
) -> Response:
    """
    Download one admin table as CSV.

    Tables: bookings (filtered to the range), subscriptions, technicians.
    """
    if table not in EXPORT_TABLES:
        raise HTTPException(status_code=404, detail=f"Unknown export table: {table}")

    service = AnalyticsService(request, as_of=today)
    try:
        content = service.export(table)
    except Exception as e:
        logger.error(f"Error exporting {table}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to export {table}")

    filename = export_filename(settings.EXPORT_FILE_PREFIX, table, service.date_range)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
