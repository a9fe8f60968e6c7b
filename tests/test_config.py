import os
import unittest

from pydantic import ValidationError

from matatu_fare.config import Settings


class _EnvOverride:
    """Temporarily set environment variables, restoring previous values on exit."""

    def __init__(self, **values):
        self.values = values
        self.previous = {}

    def __enter__(self):
        for key, value in self.values.items():
            self.previous[key] = os.environ.get(key)
            os.environ[key] = value
        return self

    def __exit__(self, *exc):
        for key, value in self.previous.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


class TestConfig(unittest.TestCase):
    def test_settings_defaults(self):
        previous = os.environ.pop("FARE_TIMEZONE", None)
        try:
            s = Settings()
            self.assertEqual(s.timezone, "Africa/Nairobi")
            self.assertEqual(s.provider_timeout_seconds, 8.0)
            self.assertEqual(s.weather_api_url, "https://api.weatherapi.com/v1/current.json")
        finally:
            if previous is not None:
                os.environ["FARE_TIMEZONE"] = previous

    def test_settings_env_override(self):
        with _EnvOverride(FARE_PROVIDER_TIMEOUT_SECONDS="2.5", FARE_MAPS_API_KEY="maps-key"):
            s = Settings()
            self.assertEqual(s.provider_timeout_seconds, 2.5)
            self.assertEqual(s.maps_api_key, "maps-key")

    def test_source_names_are_normalized(self):
        with _EnvOverride(FARE_WEATHER_SOURCE=" Static ", FARE_ROUTE_SOURCE="GOOGLE"):
            s = Settings()
            self.assertEqual(s.weather_source, "static")
            self.assertEqual(s.route_source, "google")

    def test_invalid_timezone_rejected(self):
        with self.assertRaises(ValidationError):
            Settings(timezone="Mars/Olympus_Mons")


if __name__ == "__main__":
    unittest.main()
