import datetime as dt
import threading
import unittest
from zoneinfo import ZoneInfo

from matatu_fare.domain import (
    CongestionLevel,
    Coordinate,
    NamedCoordinate,
    RouteCandidate,
    WeatherCondition,
    WeatherObservation,
)
from matatu_fare.pricing import FarePricingEngine
from matatu_fare.providers.base import CallableRouteProvider, CallableWeatherProvider
from matatu_fare.providers.directions_client import mock_routes
from matatu_fare.providers.operator_directory import StaticOperatorDirectory
from matatu_fare.providers.weather_api_client import default_weather

NAIROBI = ZoneInfo("Africa/Nairobi")

CBD = NamedCoordinate(name="CBD", latitude=-1.2864, longitude=36.8172)
WESTLANDS = NamedCoordinate(name="Westlands", latitude=-1.2676, longitude=36.8108)


def _clock(hour: int, minute: int = 0):
    return lambda: dt.datetime(2024, 5, 6, hour, minute, tzinfo=NAIROBI)


def _weather(condition=WeatherCondition.SUNNY, humidity=50.0) -> WeatherObservation:
    return WeatherObservation(
        temperature=24.0,
        humidity=humidity,
        precipitation=0.0,
        wind_speed=9.0,
        condition=condition,
        visibility=10.0,
    )


def _route(route_id: str, distance_km: float, congestion=CongestionLevel.MODERATE) -> RouteCandidate:
    return RouteCandidate(
        id=route_id,
        name=route_id,
        distance_km=distance_km,
        duration_minutes=35,
        congestion=congestion,
        safety_score=8.5,
    )


def _engine(weather_fetch=None, route_fetch=None, directory=None, hour=8, timeout=2.0):
    weather_fetch = weather_fetch or (lambda coordinate: _weather())
    route_fetch = route_fetch or (lambda origin, destination: [_route("main", 15.2), _route("alt", 18.7)])
    return FarePricingEngine(
        CallableWeatherProvider(fetch=weather_fetch, default=default_weather, name="weather"),
        CallableRouteProvider(fetch=route_fetch, default=mock_routes, name="routes"),
        directory or StaticOperatorDirectory(),
        provider_timeout=timeout,
        clock=_clock(hour),
    )


class TestEstimateFare(unittest.TestCase):
    def test_peak_hour_moderate_traffic_trip(self):
        estimate = _engine().estimate_fare(CBD, WESTLANDS)

        # 248 * 1.4 * 1.15 = 399.28
        self.assertEqual(estimate.estimated_fare, 399)
        self.assertAlmostEqual(estimate.base_fare, 248.0)
        self.assertEqual(estimate.factors.time_multiplier, 1.4)
        self.assertEqual(estimate.factors.weather_multiplier, 1.0)
        self.assertEqual(estimate.factors.traffic_multiplier, 1.15)
        self.assertEqual(estimate.factors.demand_multiplier, 1.0)
        self.assertEqual(estimate.factors.sacco_multiplier, 1.0)
        self.assertEqual(estimate.recommended_operator.name, "City Hoppa")
        self.assertEqual([r.id for r in estimate.alternative_routes], ["alt"])
        self.assertFalse(estimate.degraded)
        self.assertEqual(estimate.defaulted_sources, ())
        self.assertAlmostEqual(estimate.breakdown.total(), 399.28)

    def test_storm_at_peak_raises_demand(self):
        engine = _engine(weather_fetch=lambda c: _weather(WeatherCondition.STORMY))
        estimate = engine.estimate_fare(CBD, WESTLANDS)
        self.assertEqual(estimate.factors.weather_multiplier, 1.6)
        self.assertEqual(estimate.factors.demand_multiplier, 1.2)

    def test_operator_discount_applies(self):
        rongai = NamedCoordinate(name="Rongai", latitude=-1.396, longitude=36.76)
        estimate = _engine(hour=10).estimate_fare(CBD, rongai)
        self.assertEqual(estimate.recommended_operator.name, "Double M")
        self.assertEqual(estimate.factors.sacco_multiplier, 0.9)

    def test_unserved_route_prices_without_operator(self):
        thika = NamedCoordinate(name="Thika", latitude=-1.03, longitude=37.07)
        estimate = _engine().estimate_fare(CBD, thika)
        self.assertIsNone(estimate.recommended_operator)
        self.assertEqual(estimate.factors.sacco_multiplier, 1.0)
        self.assertEqual(estimate.defaulted_sources, ())

    def test_alternatives_keep_provider_order(self):
        routes = [_route("a", 5), _route("b", 30), _route("c", 2)]
        estimate = _engine(route_fetch=lambda o, d: routes).estimate_fare(CBD, WESTLANDS)
        self.assertEqual([r.id for r in estimate.alternative_routes], ["b", "c"])
        self.assertAlmostEqual(estimate.base_fare, 95.0)

    def test_rider_location_used_for_weather(self):
        seen = []
        rider = Coordinate(latitude=-1.30, longitude=36.80)

        def fetch(coordinate):
            seen.append(coordinate)
            return _weather()

        engine = _engine(weather_fetch=fetch)
        engine.estimate_fare(CBD, WESTLANDS, rider)
        engine.estimate_fare(CBD, WESTLANDS)
        self.assertEqual(seen[0], rider)
        self.assertEqual((seen[1].latitude, seen[1].longitude), (CBD.latitude, CBD.longitude))


class TestDegradedEstimates(unittest.TestCase):
    def test_no_routes_returns_fallback(self):
        estimate = _engine(route_fetch=lambda o, d: []).estimate_fare(CBD, WESTLANDS)
        self.assertTrue(estimate.degraded)
        self.assertEqual(estimate.estimated_fare, 50)
        self.assertIsNone(estimate.recommended_operator)

    def test_unexpected_provider_error_returns_fallback(self):
        class ExplodingRoutes:
            name = "routes"

            def fetch_routes(self, origin, destination):
                raise RuntimeError("bug")

            def default_routes(self):
                return mock_routes()

        engine = FarePricingEngine(
            CallableWeatherProvider(fetch=lambda c: _weather(), default=default_weather),
            ExplodingRoutes(),
            StaticOperatorDirectory(),
            clock=_clock(8),
        )
        estimate = engine.estimate_fare(CBD, WESTLANDS)
        self.assertTrue(estimate.degraded)
        self.assertEqual(estimate.estimated_fare, 50)

    def test_route_failure_uses_mock_routes(self):
        def fail(origin, destination):
            raise ConnectionError("directions down")

        estimate = _engine(route_fetch=fail).estimate_fare(CBD, WESTLANDS)
        self.assertFalse(estimate.degraded)
        self.assertEqual(estimate.defaulted_sources, ("routes",))
        self.assertEqual(estimate.alternative_routes[0].id, "route_2")
        self.assertEqual(estimate.estimated_fare, 399)

    def test_weather_timeout_uses_default_weather(self):
        release = threading.Event()

        def slow_weather(coordinate):
            release.wait(5)
            return _weather(WeatherCondition.STORMY)

        try:
            estimate = _engine(weather_fetch=slow_weather, timeout=0.2).estimate_fare(CBD, WESTLANDS)
        finally:
            release.set()

        self.assertEqual(estimate.defaulted_sources, ("weather",))
        self.assertEqual(estimate.factors.weather_multiplier, 1.0)
        self.assertEqual(estimate.estimated_fare, 399)

    def test_operator_directory_failure_is_absorbed(self):
        class BrokenDirectory:
            def fetch_operators(self, route_key):
                raise OSError("directory unavailable")

        estimate = _engine(directory=BrokenDirectory()).estimate_fare(CBD, WESTLANDS)
        self.assertFalse(estimate.degraded)
        self.assertIsNone(estimate.recommended_operator)
        self.assertEqual(estimate.defaulted_sources, ("operators",))


class TestConcurrentFetch(unittest.TestCase):
    def test_weather_and_routes_fetched_concurrently(self):
        # each fetch waits for the other; sequential calls would break the barrier
        barrier = threading.Barrier(2, timeout=2)

        def weather(coordinate):
            barrier.wait()
            return _weather()

        def routes(origin, destination):
            barrier.wait()
            return [_route("main", 15.2)]

        estimate = _engine(weather_fetch=weather, route_fetch=routes).estimate_fare(CBD, WESTLANDS)
        self.assertEqual(estimate.defaulted_sources, ())


class TestInsights(unittest.TestCase):
    def test_insights_for_peak_trip(self):
        engine = _engine()
        insights = engine.get_pricing_insights(engine.estimate_fare(CBD, WESTLANDS))
        self.assertIn("Peak hour pricing is currently active", insights)
        self.assertNotIn("Weather conditions are affecting fare prices", insights)
        self.assertIn("City Hoppa is recommended for this route", insights)
        self.assertIn("1 alternative routes available", insights)


if __name__ == "__main__":
    unittest.main()
