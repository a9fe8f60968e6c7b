"""Helpers for fetching current conditions from the WeatherAPI.com service."""
from __future__ import annotations

import requests
from retry_requests import retry

from matatu_fare.config import settings
from matatu_fare.domain import Coordinate, WeatherCondition, WeatherObservation
from utils.logging_utils import get_tagged_logger, mask_url_secrets
logger = get_tagged_logger(__name__, tag="weather_api_client")

# Observations are never cached: every pricing request sees fresh weather.
session = retry(requests.Session(), retries=settings.http_retries, backoff_factor=settings.http_backoff_factor)

WEATHER_API_URL = "https://api.weatherapi.com/v1/current.json"

# Checked in order; the first group with a matching keyword wins.
CONDITION_KEYWORDS = (
    (WeatherCondition.RAINY, ("rain", "drizzle")),
    (WeatherCondition.STORMY, ("storm", "thunder")),
    (WeatherCondition.CLOUDY, ("cloud", "overcast")),
)

DEFAULT_WEATHER = WeatherObservation(
    temperature=25.0,
    humidity=60.0,
    precipitation=0.0,
    wind_speed=10.0,
    condition=WeatherCondition.SUNNY,
    visibility=10.0,
)


def default_weather() -> WeatherObservation:
    """Neutral sunny reading served when the API cannot be reached."""
    return DEFAULT_WEATHER


def map_weather_condition(text: str | None) -> WeatherCondition:
    """Collapse a free-text condition ("Patchy light drizzle") into a WeatherCondition."""
    lowered = (text or "").lower()
    for condition, keywords in CONDITION_KEYWORDS:
        if any(k in lowered for k in keywords):
            return condition
    return WeatherCondition.SUNNY


def fetch_current_weather(coordinate: Coordinate,
                          *,
                          api_key: str,
                          url: str = WEATHER_API_URL,
                          timeout: float = 10,
                         ) -> WeatherObservation:
    """Fetch the current observation for a coordinate; raises on HTTP or payload errors."""
    params = {
        "key": api_key,
        "q": coordinate.as_query(),
        "aqi": "no",
    }

    resp = session.get(url, params=params, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()

    current = data.get("current") if isinstance(data, dict) else None
    if not current:
        raise ValueError("WeatherAPI response has no 'current' block")

    try:
        observation = WeatherObservation(
            temperature=current["temp_c"],
            humidity=current["humidity"],
            precipitation=current.get("precip_mm", 0.0) or 0.0,
            wind_speed=current.get("wind_kph", 0.0) or 0.0,
            condition=map_weather_condition((current.get("condition") or {}).get("text")),
            visibility=current.get("vis_km", DEFAULT_WEATHER.visibility),
        )
    except KeyError as exc:
        raise ValueError(f"WeatherAPI response missing field {exc}") from exc

    logger.debug(
        "Fetched current weather",
        extra={
            "url": mask_url_secrets(getattr(resp, "url", "") or url),
            "condition": observation.condition.value,
            "humidity": observation.humidity,
        },
    )
    return observation
