"""Interfaces and helpers for forecast data sources."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from bandweather.data_sources.wunderground_client import ForecastData


class ForecastDataSource(Protocol):
    """Interface for anything that can provide a ForecastData record."""

    async def get_forecast(
        self,
        *,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        postal_code: Optional[str] = None,
    ) -> ForecastData:
        """Return the forecast for a coordinate or a postal code."""
        ...


@dataclass
class CallableForecastDataSource(ForecastDataSource):
    """Wrap a blocking fetch callable and run it off the event loop."""

    fetch: Callable[..., ForecastData]
    name: str = "callable"

    async def get_forecast(self, **kwargs) -> ForecastData:
        """Delegate to the configured callable in a worker thread."""
        return await asyncio.to_thread(self.fetch, **kwargs)
