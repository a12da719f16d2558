"""Best-effort device location with a bounded wait.

The platform geolocation service is modelled as a LocationProvider. Callers go
through `locate()`, which turns a timeout, a disabled provider or a provider
error into ``None`` instead of failing the workflow.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from bandweather import config
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="location")

DEFAULT_ACCURACY_METERS = 5000


@dataclass(frozen=True)
class Geopoint:
    """A coordinate fix."""
    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None


class LocationProvider(Protocol):
    """Anything that can produce at most one coordinate per request."""

    @property
    def enabled(self) -> bool:
        """False when the location service is switched off."""
        ...

    async def request_position(self, desired_accuracy_meters: int = DEFAULT_ACCURACY_METERS) -> Optional[Geopoint]:
        """Return a fix, or None if the provider has nothing."""
        ...


class DisabledLocationProvider:
    """Location service turned off."""

    enabled = False

    async def request_position(self, desired_accuracy_meters: int = DEFAULT_ACCURACY_METERS) -> Optional[Geopoint]:
        return None


@dataclass
class FixedLocationProvider:
    """Always reports the configured coordinate."""
    latitude: float
    longitude: float
    enabled: bool = True

    async def request_position(self, desired_accuracy_meters: int = DEFAULT_ACCURACY_METERS) -> Optional[Geopoint]:
        return Geopoint(self.latitude, self.longitude, accuracy_meters=0.0)


class IpLocationProvider:
    """Coarse city-level fix from an IP geolocation service (ip-api.com shape)."""

    enabled = True

    def __init__(self, url: str, *, timeout: float = 10.0, session_factory=requests.Session) -> None:
        self.url = url
        self.timeout = timeout
        self._session_factory = session_factory

    def _lookup(self) -> Optional[Geopoint]:
        with self._session_factory() as session:
            resp = session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        if data.get("status", "success") != "success":
            logger.warning("IP geolocation lookup unsuccessful: %s", data.get("message"))
            return None
        lat, lon = data.get("lat"), data.get("lon")
        if lat is None or lon is None:
            return None
        # IP lookups resolve to a city; report it as coarse.
        return Geopoint(float(lat), float(lon), accuracy_meters=float(DEFAULT_ACCURACY_METERS))

    async def request_position(self, desired_accuracy_meters: int = DEFAULT_ACCURACY_METERS) -> Optional[Geopoint]:
        return await asyncio.to_thread(self._lookup)


class CachedLocationProvider:
    """Reuse a previous fix while it is younger than `max_age_seconds`."""

    def __init__(self, inner: LocationProvider, *, max_age_seconds: float) -> None:
        self.inner = inner
        self.max_age = max_age_seconds
        self._last: Optional[Geopoint] = None
        self._last_at: float = 0.0

    @property
    def enabled(self) -> bool:
        return self.inner.enabled

    async def request_position(self, desired_accuracy_meters: int = DEFAULT_ACCURACY_METERS) -> Optional[Geopoint]:
        if self._last is not None and time.monotonic() - self._last_at <= self.max_age:
            logger.debug("Reusing cached location fix")
            return self._last
        point = await self.inner.request_position(desired_accuracy_meters)
        if point is not None:
            self._last = point
            self._last_at = time.monotonic()
        return point


async def locate(
    provider: LocationProvider,
    *,
    timeout_seconds: float,
    desired_accuracy_meters: int = DEFAULT_ACCURACY_METERS,
) -> Optional[Geopoint]:
    """Produce at most one coordinate within `timeout_seconds`, else None."""
    if not provider.enabled:
        logger.info("Location service disabled")
        return None
    try:
        return await asyncio.wait_for(
            provider.request_position(desired_accuracy_meters), timeout=timeout_seconds
        )
    except asyncio.TimeoutError:
        logger.warning("No location fix within %.1fs", timeout_seconds)
    except Exception as exc:
        logger.warning("Location lookup failed: %s", exc)
    return None


def build_location_provider(settings: config.Settings | None = None) -> LocationProvider:
    """Instantiate the configured location provider."""
    settings = settings or config.settings
    source = (settings.location_source or "ip").lower()

    if source == "disabled":
        logger.info("Location disabled by configuration")
        return DisabledLocationProvider()

    if source == "fixed":
        if settings.latitude is None or settings.longitude is None:
            raise ValueError("latitude and longitude must be set for the fixed location source")
        logger.info("Using fixed location")
        return FixedLocationProvider(settings.latitude, settings.longitude)

    if source == "ip":
        logger.info("Using IP geolocation", extra={"url": settings.location_service_url})
        return IpLocationProvider(settings.location_service_url, timeout=settings.location_timeout_seconds)

    raise ValueError(f"Unknown location source '{source}'")
