import unittest

from ecosphere.data_sources import open_meteo_client
from ecosphere.errors import SourceError


class DummyResp:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


class RecordingSession:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        return DummyResp(self.payload)


def _make_weather_payload(hours=24):
    return {
        "hourly": {
            "time": [f"2024-01-01T{h:02d}:00" for h in range(hours)],
            "temperature_2m": [10.0 + h for h in range(hours)],
            "precipitation": [0.1 * h for h in range(hours)],
            "cloud_cover": [float(h) for h in range(hours)],
            "wind_speed_10m": [5.0] * hours,
        },
        "hourly_units": {
            "temperature_2m": "°C",
            "precipitation": "mm",
            "cloud_cover": "%",
            "wind_speed_10m": "km/h",
        },
    }


class TestOpenMeteoClient(unittest.TestCase):
    def setUp(self):
        self._orig_session = open_meteo_client.session

    def tearDown(self):
        open_meteo_client.session = self._orig_session

    def test_fetch_weather_series(self):
        fake = RecordingSession(_make_weather_payload())
        open_meteo_client.session = fake

        series = open_meteo_client.fetch_weather_series(52.5, 13.4)

        self.assertEqual(len(series.temperature), 24)
        self.assertEqual(series.value_at("temperature", 3), 13.0)
        self.assertEqual(series.value_at("wind_speed", 23), 5.0)
        self.assertEqual(series.units["temperature"], "°C")
        url, params = fake.calls[0]
        self.assertEqual(url, open_meteo_client.OPEN_METEO_WEATHER_URL)
        self.assertEqual(params["latitude"], 52.5)
        self.assertEqual(params["forecast_days"], 1)
        self.assertIn("temperature_2m", params["hourly"])

    def test_fetch_weather_series_truncates_to_one_day(self):
        open_meteo_client.session = RecordingSession(_make_weather_payload(hours=48))
        series = open_meteo_client.fetch_weather_series(0, 0)
        self.assertEqual(len(series.temperature), 24)

    def test_fetch_weather_series_without_hourly_data(self):
        open_meteo_client.session = RecordingSession({"hourly": {}, "hourly_units": {}})
        self.assertIsNone(open_meteo_client.fetch_weather_series(0, 0))

    def test_unexpected_unit_logs_warning(self):
        payload = _make_weather_payload()
        payload["hourly_units"]["temperature_2m"] = "K"
        open_meteo_client.session = RecordingSession(payload)
        with self.assertLogs("ecosphere.data_sources.open_meteo_client", level="WARNING"):
            open_meteo_client.fetch_weather_series(0, 0)

    def test_fetch_air_quality_index(self):
        fake = RecordingSession({"current": {"time": "2024-01-01T12:00", "us_aqi": 41.6}})
        open_meteo_client.session = fake

        self.assertEqual(open_meteo_client.fetch_air_quality_index(1.0, 2.0), 42)
        url, params = fake.calls[0]
        self.assertEqual(url, open_meteo_client.OPEN_METEO_AIR_URL)
        self.assertEqual(params["current"], "us_aqi")

    def test_fetch_air_quality_index_missing(self):
        open_meteo_client.session = RecordingSession({"current": {}})
        self.assertIsNone(open_meteo_client.fetch_air_quality_index(0, 0))

    def test_fetch_air_quality_index_malformed(self):
        open_meteo_client.session = RecordingSession({"current": {"us_aqi": "-"}})
        with self.assertRaises(SourceError):
            open_meteo_client.fetch_air_quality_index(0, 0)


if __name__ == "__main__":
    unittest.main()
