import os

import uvicorn

from bandweather.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def warn_on_missing_api_keys() -> None:
    """
    Log what is missing before the server starts:
    - BANDWEATHER_WEATHER_API_KEY: without it every forecast request is rejected.
    - BANDWEATHER_API_KEY: without it the HTTP API accepts unauthenticated calls.
    """
    if not settings.weather_api_key:
        logger.warning("BANDWEATHER_WEATHER_API_KEY is not set; syncs will fail at the forecast step")
    if not settings.api_key:
        logger.info("BANDWEATHER_API_KEY is not set; the HTTP API is open")


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="bandweather-api")
    warn_on_missing_api_keys()

    uvicorn.run(
        "bandweather.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
