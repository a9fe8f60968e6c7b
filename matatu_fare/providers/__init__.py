"""Upstream providers (weather, routes, operators) consumed by the pricing engine."""

from .base import (
    CallableRouteProvider,
    CallableWeatherProvider,
    OperatorDirectory,
    ProviderError,
    ProviderResult,
    RouteProvider,
    WeatherProvider,
)
from .factory import build_operator_directory, build_route_provider, build_weather_provider
from .operator_directory import DEFAULT_OPERATORS, StaticOperatorDirectory, route_key_for
from .directions_client import fetch_directions, mock_routes
from .weather_api_client import default_weather, fetch_current_weather, map_weather_condition

__all__ = [
    "build_operator_directory",
    "build_route_provider",
    "build_weather_provider",
    "CallableRouteProvider",
    "CallableWeatherProvider",
    "OperatorDirectory",
    "ProviderError",
    "ProviderResult",
    "RouteProvider",
    "WeatherProvider",
    "DEFAULT_OPERATORS",
    "StaticOperatorDirectory",
    "route_key_for",
    "fetch_directions",
    "mock_routes",
    "default_weather",
    "fetch_current_weather",
    "map_weather_condition",
]
