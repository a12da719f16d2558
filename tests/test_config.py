import os
import unittest

from pydantic import ValidationError

from bandweather import constants
from bandweather.config import Settings


class TestConfig(unittest.TestCase):
    def test_settings_defaults(self):
        previous = os.environ.pop("BANDWEATHER_WEATHER_BASE_URL", None)
        try:
            s = Settings()
            self.assertEqual(s.weather_base_url, "http://api.wunderground.com")
            self.assertEqual(s.forecast_days, 5)
            self.assertEqual(s.connect_attempts, 5)
            self.assertEqual(s.connect_delay_ms, 2000)
            self.assertEqual(s.timer_freshness_minutes, 32)
            self.assertEqual(s.tile_id, constants.TILE_ID)
        finally:
            if previous is not None:
                os.environ["BANDWEATHER_WEATHER_BASE_URL"] = previous

    def test_settings_env_override_strips_trailing_slash(self):
        previous = os.environ.get("BANDWEATHER_WEATHER_BASE_URL")
        try:
            os.environ["BANDWEATHER_WEATHER_BASE_URL"] = "http://example.com/"
            s = Settings()
            self.assertEqual(s.weather_base_url, "http://example.com")
        finally:
            if previous is None:
                os.environ.pop("BANDWEATHER_WEATHER_BASE_URL", None)
            else:
                os.environ["BANDWEATHER_WEATHER_BASE_URL"] = previous

    def test_forecast_days_override(self):
        previous = os.environ.get("BANDWEATHER_FORECAST_DAYS")
        try:
            os.environ["BANDWEATHER_FORECAST_DAYS"] = "3"
            s = Settings()
            self.assertEqual(s.forecast_days, 3)
        finally:
            if previous is None:
                os.environ.pop("BANDWEATHER_FORECAST_DAYS", None)
            else:
                os.environ["BANDWEATHER_FORECAST_DAYS"] = previous

    def test_connect_attempts_must_be_positive(self):
        with self.assertRaises(ValidationError):
            Settings(connect_attempts=0)


if __name__ == "__main__":
    unittest.main()
