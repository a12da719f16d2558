"""Application configuration pulled from environment variables via pydantic."""
from uuid import UUID

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bandweather import constants
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the band weather service."""
    model_config = SettingsConfigDict(env_prefix="BANDWEATHER_", extra="ignore")

    # Weather provider
    weather_base_url: str = "http://api.wunderground.com"
    weather_alternate_base_url: str = "https://api.weather.com"
    weather_api_key: str = ""
    forecast_days: int = 5
    http_timeout_seconds: float = 15.0

    # Location
    location_source: str = "ip"  # options: ip, fixed, disabled
    location_service_url: str = "http://ip-api.com/json"
    latitude: float | None = None
    longitude: float | None = None
    postal_code: str | None = None
    location_accuracy_meters: int = 5000
    location_timeout_seconds: float = 15.0
    location_max_age_seconds: int = 1800
    background_location_timeout_seconds: float = 10.0

    # Band
    tile_id: UUID = constants.TILE_ID
    connect_attempts: int = 5
    connect_delay_ms: int = 2000

    # Background tasks
    background_access_allowed: bool = True
    timer_freshness_minutes: int = 32
    timezone_poll_seconds: float = 60.0

    # Persisted settings + HTTP surface
    settings_redis_url: str | None = None
    settings_redis_prefix: str = "bandweather:"
    api_key: str | None = None
    log_level: str = "INFO"

    @field_validator("weather_base_url", "weather_alternate_base_url", "location_service_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("connect_attempts", "forecast_days", mode="after")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        """Counts that drive loops must be positive."""
        if v < 1:
            raise ValueError("must be >= 1")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
