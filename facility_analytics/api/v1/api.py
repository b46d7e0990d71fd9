# facility_analytics/api/v1/api.py
from fastapi import APIRouter

from .endpoints import analytics, exports

api_router = APIRouter()

api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(exports.router, prefix="/exports", tags=["exports"])
