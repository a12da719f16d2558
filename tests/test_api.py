import unittest

from fastapi.testclient import TestClient

from bandweather import local_settings
from bandweather.band import InMemoryBandClientManager
from bandweather.band.base import BandInfo
from bandweather.config import Settings, settings
from bandweather.constants import TILE_ID
from bandweather.data_sources.wunderground_client import DayData, ForecastData
from bandweather.layouts import build_tile
from bandweather.location import FixedLocationProvider
from bandweather.main import create_app

BAND = BandInfo("Band 2", "00:11:22:33:44:55")


class FakeDataSource:
    async def get_forecast(self, **kwargs):
        return ForecastData(
            city="Austin", temp=72.0, weather="Clear", days=(DayData("Mon", "Sunny", "80", "60"),)
        )


class TestApi(unittest.TestCase):
    def setUp(self):
        self._orig_api_key = settings.api_key
        settings.api_key = None
        local_settings.use_in_memory_store_for_tests()
        self.manager = InMemoryBandClientManager([BAND])
        self.app = create_app(
            band_manager=self.manager,
            location_provider=FixedLocationProvider(30.27, -97.74),
            settings=Settings(connect_delay_ms=0),
        )

    def tearDown(self):
        settings.api_key = self._orig_api_key

    def _client(self):
        client = TestClient(self.app)
        client.__enter__()
        self.addCleanup(client.__exit__, None, None, None)
        self.app.state.controller.data_source = FakeDataSource()
        return client

    def test_status_without_tile(self):
        client = self._client()
        resp = client.get("/v1/status")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["is_paired"])
        self.assertFalse(body["is_tile_added"])
        self.assertTrue(body["can_add_tile"])
        self.assertFalse(body["background_registered"])
        self.assertEqual(body["site_description"], "use secondary site")

    def test_startup_registers_triggers_when_tile_installed(self):
        self.manager.install_tile(BAND, build_tile())
        client = self._client()
        body = client.get("/v1/status").json()
        self.assertTrue(body["is_tile_added"])
        self.assertTrue(body["background_registered"])

    def test_add_sync_remove_flow(self):
        client = self._client()

        resp = client.post("/v1/tile")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "succeeded")

        resp = client.post("/v1/sync")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["succeeded"])
        self.assertTrue(body["message"].startswith("Successful sync occurred at"))
        self.assertEqual(len(self.manager.pages_for(BAND, TILE_ID)), 3)
        self.assertEqual(client.get("/v1/status").json()["last_sync"], body["message"])

        resp = client.delete("/v1/tile")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(client.get("/v1/status").json()["is_tile_added"])

    def test_sync_without_tile_reports_tile_missing(self):
        client = self._client()
        body = client.post("/v1/sync").json()
        self.assertEqual(body["status"], "tile_missing")
        self.assertFalse(body["succeeded"])

    def test_busy_controller_returns_409(self):
        client = self._client()
        self.app.state.controller._foreground_busy = True
        resp = client.post("/v1/sync")
        self.assertEqual(resp.status_code, 409)
        self.app.state.controller._foreground_busy = False

    def test_alternate_source_settings(self):
        client = self._client()
        self.assertFalse(client.get("/v1/settings/alternate-source").json()["use_alternate_source"])
        resp = client.put("/v1/settings/alternate-source", json={"use_alternate_source": True})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"use_alternate_source": True, "site_description": "use primary site"})
        self.assertTrue(local_settings.get_use_alternate_source())

    def test_alternate_source_validation(self):
        client = self._client()
        resp = client.put("/v1/settings/alternate-source", json={})
        self.assertEqual(resp.status_code, 422)

    def test_api_key_required_when_configured(self):
        settings.api_key = "secret"
        client = self._client()
        self.assertEqual(client.get("/v1/status").status_code, 401)
        self.assertEqual(client.get("/v1/status", headers={"X-API-Key": "wrong"}).status_code, 401)
        self.assertEqual(client.get("/v1/status", headers={"X-API-Key": "secret"}).status_code, 200)


if __name__ == "__main__":
    unittest.main()
