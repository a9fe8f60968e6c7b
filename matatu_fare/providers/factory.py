"""Factory helpers for choosing upstream providers at startup."""

from __future__ import annotations

import random
from functools import partial
from typing import List

from matatu_fare import config
from matatu_fare.domain import Coordinate, RouteCandidate, WeatherObservation
from matatu_fare.providers.base import (
    CallableRouteProvider,
    CallableWeatherProvider,
    OperatorDirectory,
    RouteProvider,
    WeatherProvider,
)
from matatu_fare.providers.directions_client import fetch_directions, mock_routes
from matatu_fare.providers.operator_directory import StaticOperatorDirectory
from matatu_fare.providers.weather_api_client import default_weather, fetch_current_weather
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="providers/factory")


DEFAULT_WEATHER_SOURCE = "weatherapi"
DEFAULT_ROUTE_SOURCE = "google"


def _static_weather(_coordinate: Coordinate) -> WeatherObservation:
    return default_weather()


def _static_routes(_origin: Coordinate, _destination: Coordinate) -> List[RouteCandidate]:
    return mock_routes()


def build_weather_provider(settings: config.Settings | None = None) -> WeatherProvider:
    """Instantiate the configured weather provider."""
    settings = settings or config.settings
    source = (settings.weather_source or DEFAULT_WEATHER_SOURCE).lower()

    if source == "weatherapi":
        if not settings.weather_api_key:
            logger.warning("weather_api_key is not set; using static weather readings")
            return CallableWeatherProvider(fetch=_static_weather, default=default_weather, name="weather")
        logger.info("Using WeatherAPI weather provider")
        fetch = partial(
            fetch_current_weather,
            api_key=settings.weather_api_key,
            url=settings.weather_api_url,
            timeout=settings.http_timeout_seconds,
        )
        return CallableWeatherProvider(fetch=fetch, default=default_weather, name="weather")

    if source == "static":
        logger.info("Using static weather provider")
        return CallableWeatherProvider(fetch=_static_weather, default=default_weather, name="weather")

    raise ValueError(f"Unknown weather source '{source}'")


def build_route_provider(settings: config.Settings | None = None) -> RouteProvider:
    """Instantiate the configured route provider."""
    settings = settings or config.settings
    source = (settings.route_source or DEFAULT_ROUTE_SOURCE).lower()

    if source == "google":
        if not settings.maps_api_key:
            logger.warning("maps_api_key is not set; using mock routes")
            return CallableRouteProvider(fetch=_static_routes, default=mock_routes, name="routes")
        logger.info("Using Google Directions route provider")
        rng = random.Random(settings.route_safety_seed) if settings.route_safety_seed is not None else None
        fetch = partial(
            fetch_directions,
            api_key=settings.maps_api_key,
            url=settings.directions_url,
            timeout=settings.http_timeout_seconds,
            rng=rng,
        )
        return CallableRouteProvider(fetch=fetch, default=mock_routes, name="routes")

    if source == "static":
        logger.info("Using static route provider")
        return CallableRouteProvider(fetch=_static_routes, default=mock_routes, name="routes")

    raise ValueError(f"Unknown route source '{source}'")


def build_operator_directory(settings: config.Settings | None = None) -> OperatorDirectory:
    """Operator directory from `operators_file` when set, else the built-in SACCOs."""
    settings = settings or config.settings
    if settings.operators_file:
        return StaticOperatorDirectory.from_json(settings.operators_file)
    logger.info("Using built-in operator directory")
    return StaticOperatorDirectory()
