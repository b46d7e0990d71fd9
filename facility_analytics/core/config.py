# facility_analytics/core/config.py
"""
Service configuration read from the environment (and a local .env file).
"""
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Runtime settings for the analytics service"""

    def __init__(self):
        self.PROJECT_NAME: str = os.getenv("PROJECT_NAME", "facility-analytics")
        self.API_V1_STR: str = os.getenv("API_V1_STR", "/api/v1")

        # When unset, analytics endpoints are open (development only)
        self.ANALYTICS_API_KEY: Optional[str] = os.getenv("ANALYTICS_API_KEY") or None

        # Timezone used to resolve "today" for default ranges and as_of dates
        self.TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Dubai")

        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "8000"))

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.EXPORT_FILE_PREFIX: str = os.getenv("EXPORT_FILE_PREFIX", "INAYA")
        self.CORS_ORIGINS: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]


settings = Settings()
