# facility_analytics/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from facility_analytics.api.v1.api import api_router
from facility_analytics.api.v1.endpoints import health
from facility_analytics.core.config import settings
from facility_analytics.core.enhanced_logging import get_enhanced_logger, setup_logging

logger = get_enhanced_logger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.PROJECT_NAME, openapi_url=f"{settings.API_V1_STR}/openapi.json")

    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(health.router)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.PROJECT_NAME} started (timezone {settings.TIMEZONE})")
    return app


app = create_app()


def run() -> None:
    """Console entry point: ``uvicorn facility_analytics.main:app``."""
    import uvicorn

    uvicorn.run(
        "facility_analytics.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
