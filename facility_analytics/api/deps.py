"""API dependencies."""

import hmac
from datetime import date
from typing import Optional
import logging

from fastapi import Header, HTTPException, status

from facility_analytics.core.config import settings
from facility_analytics.utils.dates import today

logger = logging.getLogger(__name__)

__all__ = ["verify_api_key", "get_today"]

_open_access_logged = False


def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> bool:
    """
    Check the admin dashboard's X-API-Key header against ANALYTICS_API_KEY.

    Without a configured key the analytics and export routes stay open so the
    dashboard can be pointed at a local instance; that is logged once per process.
    """
    global _open_access_logged

    if not settings.ANALYTICS_API_KEY:
        if not _open_access_logged:
            logger.warning(
                "ANALYTICS_API_KEY is not set: booking and subscription analytics "
                "are served without authentication"
            )
            _open_access_logged = True
        return True

    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-API-Key header required for analytics"
        )

    if not hmac.compare_digest(x_api_key.encode(), settings.ANALYTICS_API_KEY.encode()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="X-API-Key does not match this analytics service"
        )

    return True


def get_today() -> date:
    """Current date in the configured timezone; overridden in tests."""
    return today(settings.TIMEZONE)
