"""Helpers for fetching the 10-day forecast from the Weather Underground API."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, List, Optional, Tuple

import requests
from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError

from bandweather import constants
from bandweather.errors import ForecastUnavailableError
from utils.logging_utils import get_tagged_logger, mask_api_key_url

logger = get_tagged_logger(__name__, tag="wunderground_client")

# One session per request; swapped out by tests.
session_factory = requests.Session


@dataclass(frozen=True)
class DayData:
    """Display strings for one forecast day."""
    day: str
    weather: str
    high: str
    low: str


@dataclass(frozen=True)
class ForecastData:
    """Current conditions plus the next few days for one place."""
    city: str
    temp: float
    weather: str
    days: Tuple[DayData, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Response schema: only the fields we read. Unknown fields are ignored so the
# provider can add to the payload; a missing field fails validation.
# ---------------------------------------------------------------------------

class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _DisplayLocation(_Lenient):
    city: str


class _CurrentObservation(_Lenient):
    display_location: _DisplayLocation
    temp_f: float
    weather: str


def _to_display_string(value):
    """Temperatures arrive as "80" or 80 depending on the endpoint."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


DisplayTemperature = Annotated[str, BeforeValidator(_to_display_string)]


class _Temperature(_Lenient):
    fahrenheit: DisplayTemperature


class _ForecastDate(_Lenient):
    weekday_short: str


class _ForecastDay(_Lenient):
    date: _ForecastDate
    high: _Temperature
    low: _Temperature
    conditions: str


class _SimpleForecast(_Lenient):
    forecastday: List[_ForecastDay]


class _Forecast(_Lenient):
    simpleforecast: _SimpleForecast


class ConditionsResponse(_Lenient):
    """The parts of `conditions/hourly/forecast10day` this app consumes."""
    current_observation: _CurrentObservation
    forecast: _Forecast

    def to_forecast_data(self, days: int) -> ForecastData:
        """Flatten into ForecastData keeping at most `days` day summaries."""
        current = self.current_observation
        return ForecastData(
            city=current.display_location.city,
            temp=current.temp_f,
            weather=current.weather,
            days=tuple(
                DayData(
                    day=d.date.weekday_short,
                    weather=d.conditions,
                    high=d.high.fahrenheit,
                    low=d.low.fahrenheit,
                )
                for d in self.forecast.simpleforecast.forecastday[:days]
            ),
        )


def build_forecast_url(
    base_url: str,
    api_key: str,
    *,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    postal_code: Optional[str] = None,
) -> str:
    """Build the conditions URL for a coordinate or, failing that, a postal code."""
    if latitude is not None and longitude is not None:
        query = f"{latitude:.2f},{longitude:.2f}"
    elif postal_code:
        query = postal_code.strip()
    else:
        raise ValueError("either a coordinate or a postal code is required")
    return base_url.rstrip("/") + constants.CONDITIONS_PATH.format(key=api_key, query=query)


def fetch_forecast(
    *,
    base_url: str,
    api_key: str,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    postal_code: Optional[str] = None,
    days: int = 5,
    timeout: float = 15.0,
) -> ForecastData:
    """Fetch and decode the forecast with a single GET.

    Any transport, HTTP status, JSON or schema failure is raised as
    ForecastUnavailableError. There is no retry.
    """
    url = build_forecast_url(
        base_url, api_key, latitude=latitude, longitude=longitude, postal_code=postal_code
    )
    masked = mask_api_key_url(url)
    logger.info("Requesting forecast", extra={"url": masked})

    try:
        with session_factory() as session:
            resp = session.get(url, timeout=timeout)
            resp.raise_for_status()
            payload = resp.json()
    except requests.RequestException as exc:
        logger.warning("Forecast request failed: %s", exc, extra={"url": masked})
        raise ForecastUnavailableError(f"Forecast request failed: {exc}") from exc
    except ValueError as exc:
        logger.warning("Forecast body is not JSON: %s", exc, extra={"url": masked})
        raise ForecastUnavailableError("Forecast response was not valid JSON.") from exc

    try:
        decoded = ConditionsResponse.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Forecast payload failed validation: %s", exc.errors()[:3])
        raise ForecastUnavailableError(
            f"Forecast response is missing expected fields ({exc.error_count()} errors)."
        ) from exc

    forecast = decoded.to_forecast_data(days)
    logger.debug(
        "Decoded forecast for %s: %s°F %s, %d days",
        forecast.city, forecast.temp, forecast.weather, len(forecast.days),
    )
    return forecast
