# facility_analytics/api/v1/endpoints/health.py
from typing import Dict

from fastapi import APIRouter

from facility_analytics.core.config import settings

router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "ok", "service": settings.PROJECT_NAME}
