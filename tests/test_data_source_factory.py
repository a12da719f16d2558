import asyncio
import unittest

from bandweather.data_sources import wunderground_client
from bandweather.data_sources.base import CallableForecastDataSource
from bandweather.data_sources.factory import build_data_source
from bandweather.data_sources.wunderground_client import ForecastData


class DummySettings:
    def __init__(self, **kwargs):
        self.weather_base_url = "http://primary.example.com"
        self.weather_alternate_base_url = "http://alternate.example.com"
        self.weather_api_key = "KEY"
        self.forecast_days = 3
        self.http_timeout_seconds = 7.5
        for k, v in kwargs.items():
            setattr(self, k, v)


class TestDataSourceFactory(unittest.TestCase):
    def test_primary_endpoint_by_default(self):
        ds = build_data_source(DummySettings())
        self.assertIsInstance(ds, CallableForecastDataSource)
        self.assertEqual(ds.name, "primary")
        self.assertEqual(ds.fetch.keywords["base_url"], "http://primary.example.com")
        self.assertEqual(ds.fetch.keywords["days"], 3)
        self.assertEqual(ds.fetch.keywords["timeout"], 7.5)

    def test_alternate_endpoint(self):
        ds = build_data_source(DummySettings(), use_alternate_source=True)
        self.assertEqual(ds.name, "alternate")
        self.assertEqual(ds.fetch.keywords["base_url"], "http://alternate.example.com")

    def test_missing_url_raises(self):
        with self.assertRaises(ValueError):
            build_data_source(DummySettings(weather_alternate_base_url=""), use_alternate_source=True)


class TestCallableForecastDataSource(unittest.TestCase):
    def test_get_forecast_passes_query_to_fetch(self):
        seen = {}
        expected = ForecastData(city="Austin", temp=72.0, weather="Clear")

        def fetch(**kwargs):
            seen.update(kwargs)
            return expected

        ds = CallableForecastDataSource(fetch=fetch)
        result = asyncio.run(ds.get_forecast(latitude=1.0, longitude=2.0))
        self.assertIs(result, expected)
        self.assertEqual(seen, {"latitude": 1.0, "longitude": 2.0})

    def test_bound_fetch_targets_forecast_client(self):
        ds = build_data_source(DummySettings())
        self.assertIs(ds.fetch.func, wunderground_client.fetch_forecast)
        self.assertEqual(ds.fetch.keywords["api_key"], "KEY")


if __name__ == "__main__":
    unittest.main()
