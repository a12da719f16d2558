"""Factory helpers for choosing the forecast endpoint at sync time."""

from __future__ import annotations

from functools import partial

from bandweather import config
from bandweather.data_sources.base import CallableForecastDataSource, ForecastDataSource
from bandweather.data_sources.wunderground_client import fetch_forecast
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_data_source(
    settings: config.Settings | None = None,
    *,
    use_alternate_source: bool = False,
) -> ForecastDataSource:
    """Bind the forecast client to the primary or alternate endpoint."""
    settings = settings or config.settings
    if use_alternate_source:
        base_url = settings.weather_alternate_base_url
        name = "alternate"
    else:
        base_url = settings.weather_base_url
        name = "primary"
    if not base_url:
        raise ValueError(f"No base URL configured for the {name} weather endpoint")
    if not settings.weather_api_key:
        logger.warning("No weather API key configured; forecast requests will likely be rejected")

    logger.info("Using %s weather endpoint", name, extra={"base_url": base_url})
    return CallableForecastDataSource(
        fetch=partial(
            fetch_forecast,
            base_url=base_url,
            api_key=settings.weather_api_key,
            days=settings.forecast_days,
            timeout=settings.http_timeout_seconds,
        ),
        name=name,
    )
