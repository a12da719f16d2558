"""Forecast data sources and the endpoint factory."""

from .base import CallableForecastDataSource, ForecastDataSource
from .factory import build_data_source
from .wunderground_client import (
    DayData,
    ForecastData,
    build_forecast_url,
    fetch_forecast,
)

__all__ = [
    "build_data_source",
    "ForecastDataSource",
    "CallableForecastDataSource",
    "DayData",
    "ForecastData",
    "build_forecast_url",
    "fetch_forecast",
]
