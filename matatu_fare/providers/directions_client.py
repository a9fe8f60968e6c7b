"""Helpers for fetching candidate routes from the Google Directions API."""
from __future__ import annotations

import random
from typing import List, Optional

import polyline
import requests
from retry_requests import retry

from matatu_fare.config import settings
from matatu_fare.domain import CongestionLevel, Coordinate, RouteCandidate
from utils.logging_utils import get_tagged_logger, mask_url_secrets
logger = get_tagged_logger(__name__, tag="directions_client")

session = retry(requests.Session(), retries=settings.http_retries, backoff_factor=settings.http_backoff_factor)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

LIGHT_TRAFFIC_MAX_MINUTES = 30
MODERATE_TRAFFIC_MAX_MINUTES = 60
SAFETY_SCORE_RANGE = (7.0, 10.0)

_safety_rng = random.Random(settings.route_safety_seed)

# Nairobi CBD -> Westlands
_MOCK_POINTS = (
    Coordinate(latitude=-1.2921, longitude=36.8219),
    Coordinate(latitude=-1.2641, longitude=36.8078),
)


def mock_routes() -> List[RouteCandidate]:
    """Canned primary + alternative route served when the API cannot be reached."""
    return [
        RouteCandidate(
            id="route_1",
            name="Main Route via Uhuru Highway",
            distance_km=15.2,
            duration_minutes=35,
            congestion=CongestionLevel.MODERATE,
            safety_score=8.5,
            points=_MOCK_POINTS,
        ),
        RouteCandidate(
            id="route_2",
            name="Alternative Route via Waiyaki Way",
            distance_km=18.7,
            duration_minutes=42,
            congestion=CongestionLevel.HEAVY,
            safety_score=7.8,
            points=_MOCK_POINTS,
        ),
    ]


def determine_congestion(duration_seconds: float) -> CongestionLevel:
    """Classify traffic from the (traffic-aware) trip duration."""
    minutes = duration_seconds / 60
    if minutes < LIGHT_TRAFFIC_MAX_MINUTES:
        return CongestionLevel.LIGHT
    if minutes < MODERATE_TRAFFIC_MAX_MINUTES:
        return CongestionLevel.MODERATE
    return CongestionLevel.HEAVY


def decode_points(encoded: str | None) -> tuple[Coordinate, ...]:
    """Decode an encoded overview polyline into coordinates."""
    if not encoded:
        return ()
    return tuple(Coordinate(latitude=lat, longitude=lng) for lat, lng in polyline.decode(encoded, 5))


def estimate_safety_score(rng: Optional[random.Random] = None) -> float:
    """Placeholder safety score until crime/road-condition data is wired in."""
    low, high = SAFETY_SCORE_RANGE
    return round((rng or _safety_rng).uniform(low, high), 1)


def _route_from_payload(index: int, route: dict, rng: Optional[random.Random]) -> RouteCandidate:
    leg = route["legs"][0]
    duration_s = leg["duration"]["value"]
    traffic_s = (leg.get("duration_in_traffic") or {}).get("value", duration_s)
    return RouteCandidate(
        id=f"route_{index}",
        name=route.get("summary") or f"Route {index + 1}",
        distance_km=leg["distance"]["value"] / 1000,
        duration_minutes=duration_s / 60,
        congestion=determine_congestion(traffic_s),
        safety_score=estimate_safety_score(rng),
        points=decode_points((route.get("overview_polyline") or {}).get("points")),
    )


def fetch_directions(origin: Coordinate,
                     destination: Coordinate,
                     *,
                     api_key: str,
                     url: str = DIRECTIONS_URL,
                     timeout: float = 10,
                     rng: Optional[random.Random] = None,
                    ) -> List[RouteCandidate]:
    """
    Fetch candidate routes, primary first, in the order the API returns them.

    ZERO_RESULTS yields an empty list. Any other non-OK status, HTTP error or
    malformed route raises.
    """
    params = {
        "origin": origin.as_query(),
        "destination": destination.as_query(),
        "alternatives": "true",
        "departure_time": "now",
        "key": api_key,
    }

    resp = session.get(url, params=params, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()

    status = data.get("status", "OK")
    if status == "ZERO_RESULTS":
        logger.info("Directions API found no route", extra={"origin": params["origin"],
                                                            "destination": params["destination"]})
        return []
    if status != "OK":
        raise ValueError(f"Directions API returned status {status}: {data.get('error_message', '')}".strip())

    try:
        routes = [_route_from_payload(i, r, rng) for i, r in enumerate(data.get("routes", []))]
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError(f"Malformed Directions API route: {exc!r}") from exc

    logger.debug(
        "Fetched routes",
        extra={"url": mask_url_secrets(getattr(resp, "url", "") or url), "routes_count": len(routes)},
    )
    return routes
