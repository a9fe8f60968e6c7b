"""Deterministic fare pricing.

The fare is a base fare scaled by a chain of multipliers applied in a fixed
order: time of day, weather, traffic, demand, operator. The breakdown records
the currency delta each stage adds on top of the running total, so the stages
sum back to the unrounded fare.

Upstream data comes from the providers in `matatu_fare.providers`, which never
raise. The only condition the engine itself handles is having no route at all;
that, or any unexpected error, produces the fixed fallback estimate.
"""

from __future__ import annotations

import math
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from datetime import datetime
from typing import Callable, List, Optional, Tuple, TypeVar
from zoneinfo import ZoneInfo

from matatu_fare import config
from matatu_fare.config import Settings
from matatu_fare.domain import (
    CongestionLevel,
    Coordinate,
    FareBreakdown,
    FareEstimate,
    NamedCoordinate,
    Operator,
    PricingFactors,
    RouteCandidate,
    WeatherCondition,
    WeatherObservation,
)
from matatu_fare.operator_ranking import select_best_operator
from matatu_fare.providers.base import (
    OperatorDirectory,
    ProviderError,
    ProviderResult,
    RouteProvider,
    WeatherProvider,
)
from matatu_fare.providers.factory import (
    build_operator_directory,
    build_route_provider,
    build_weather_provider,
)
from matatu_fare.providers.operator_directory import route_key_for
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="pricing")

T = TypeVar("T")

MINIMUM_FARE = 20.0
PER_KM_RATE = 15.0
FALLBACK_BASE_FARE = 50.0

PEAK_MULTIPLIER = 1.4
PEAK_WINDOWS = ((6.0, 9.5), (17.0, 20.0))  # inclusive, fractional hours
MIDDAY_MULTIPLIER = 1.1
MIDDAY_WINDOW = (12.0, 14.0)
LATE_NIGHT_MULTIPLIER = 1.2
LATE_NIGHT_FROM = 22.0
LATE_NIGHT_UNTIL = 5.0

STORM_MULTIPLIER = 1.6
RAIN_MULTIPLIER = 1.3
HUMID_CLOUD_MULTIPLIER = 1.1
HUMID_CLOUD_THRESHOLD = 80.0

TRAFFIC_MULTIPLIERS = {
    CongestionLevel.LIGHT: 1.0,
    CongestionLevel.MODERATE: 1.15,
    CongestionLevel.HEAVY: 1.35,
}

HIGH_DEMAND_MULTIPLIER = 1.2
MODERATE_DEMAND_MULTIPLIER = 1.1

# Insight thresholds
PEAK_INSIGHT_THRESHOLD = 1.2
WEATHER_INSIGHT_THRESHOLD = 1.1
TRAFFIC_INSIGHT_THRESHOLD = 1.2

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 8.0


class EstimationUnavailable(Exception):
    """No route data could be obtained for the trip."""


def calculate_base_fare(distance_km: float) -> float:
    """Minimum fare plus a per-km rate, never below the minimum."""
    return max(MINIMUM_FARE, MINIMUM_FARE + distance_km * PER_KM_RATE)


def fractional_hour(moment: datetime) -> float:
    """08:30 -> 8.5"""
    return moment.hour + moment.minute / 60


def time_multiplier(hour: float) -> float:
    """Time-of-day multiplier; peak windows take precedence over midday and late night."""
    if any(start <= hour <= end for start, end in PEAK_WINDOWS):
        return PEAK_MULTIPLIER
    if MIDDAY_WINDOW[0] <= hour <= MIDDAY_WINDOW[1]:
        return MIDDAY_MULTIPLIER
    if hour >= LATE_NIGHT_FROM or hour <= LATE_NIGHT_UNTIL:
        return LATE_NIGHT_MULTIPLIER
    return 1.0


def weather_multiplier(weather: WeatherObservation) -> float:
    if weather.condition == WeatherCondition.STORMY:
        return STORM_MULTIPLIER
    if weather.condition == WeatherCondition.RAINY:
        return RAIN_MULTIPLIER
    if weather.condition == WeatherCondition.CLOUDY:
        # heavy cloud often turns to rain
        return HUMID_CLOUD_MULTIPLIER if weather.humidity > HUMID_CLOUD_THRESHOLD else 1.0
    return 1.0


def traffic_multiplier(congestion: CongestionLevel) -> float:
    return TRAFFIC_MULTIPLIERS[congestion]


def demand_multiplier(time_mult: float, weather_mult: float) -> float:
    """Extra demand only when time and weather are both unfavourable."""
    if time_mult > 1.2 and weather_mult > 1.2:
        return HIGH_DEMAND_MULTIPLIER
    if time_mult > 1.0 and weather_mult > 1.0:
        return MODERATE_DEMAND_MULTIPLIER
    return 1.0


def build_breakdown(factors: PricingFactors) -> FareBreakdown:
    """Incremental delta of each stage on top of the running total."""
    running = factors.base_fare
    deltas: list[float] = []
    for multiplier in (
        factors.time_multiplier,
        factors.weather_multiplier,
        factors.traffic_multiplier,
        factors.demand_multiplier,
        factors.sacco_multiplier,
    ):
        deltas.append(running * (multiplier - 1))
        running *= multiplier

    return FareBreakdown(
        base=factors.base_fare,
        time_adjustment=deltas[0],
        weather_adjustment=deltas[1],
        traffic_adjustment=deltas[2],
        demand_adjustment=deltas[3],
        sacco_adjustment=deltas[4],
    )


def unrounded_fare(factors: PricingFactors) -> float:
    """Product of base fare and all multipliers, in application order."""
    return (
        factors.base_fare
        * factors.time_multiplier
        * factors.weather_multiplier
        * factors.traffic_multiplier
        * factors.demand_multiplier
        * factors.sacco_multiplier
    )


def round_fare(amount: float) -> int:
    """Round half up to a whole currency unit (399.5 -> 400, not banker's rounding)."""
    return int(math.floor(amount + 0.5))


def fallback_estimate() -> FareEstimate:
    """Fixed neutral estimate used when no route data is available."""
    factors = PricingFactors(base_fare=FALLBACK_BASE_FARE)
    return FareEstimate(
        estimated_fare=round_fare(FALLBACK_BASE_FARE),
        base_fare=FALLBACK_BASE_FARE,
        factors=factors,
        breakdown=FareBreakdown(base=FALLBACK_BASE_FARE),
        recommended_operator=None,
        alternative_routes=(),
        degraded=True,
    )


def pricing_insights(estimate: FareEstimate) -> List[str]:
    """Human-readable notes on what is driving the fare, in a fixed order."""
    insights: List[str] = []
    factors = estimate.factors

    if factors.time_multiplier > PEAK_INSIGHT_THRESHOLD:
        insights.append("Peak hour pricing is currently active")
    if factors.weather_multiplier > WEATHER_INSIGHT_THRESHOLD:
        insights.append("Weather conditions are affecting fare prices")
    if factors.traffic_multiplier > TRAFFIC_INSIGHT_THRESHOLD:
        insights.append("Heavy traffic is increasing travel costs")
    if estimate.recommended_operator is not None:
        insights.append(f"{estimate.recommended_operator.name} is recommended for this route")
    if estimate.alternative_routes:
        insights.append(f"{len(estimate.alternative_routes)} alternative routes available")

    return insights


class FarePricingEngine:
    """Combines weather, route and operator data into a fare estimate.

    Providers are injected; the engine holds no per-request state, so one
    instance can serve concurrent requests.
    """

    def __init__(
        self,
        weather_provider: WeatherProvider,
        route_provider: RouteProvider,
        operator_directory: OperatorDirectory,
        *,
        provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
        timezone: str = "Africa/Nairobi",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.weather_provider = weather_provider
        self.route_provider = route_provider
        self.operator_directory = operator_directory
        self.provider_timeout = provider_timeout
        self.tz = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(self.tz))

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "FarePricingEngine":
        """Wire the configured providers into an engine."""
        settings = settings or config.settings
        return cls(
            build_weather_provider(settings),
            build_route_provider(settings),
            build_operator_directory(settings),
            provider_timeout=settings.provider_timeout_seconds,
            timezone=settings.timezone,
        )

    def estimate_fare(
        self,
        origin: NamedCoordinate,
        destination: NamedCoordinate,
        rider_location: Optional[Coordinate] = None,
    ) -> FareEstimate:
        """Estimate the fare for a trip. Never raises; degrades to the fallback estimate."""
        try:
            return self._estimate(origin, destination, rider_location)
        except EstimationUnavailable as exc:
            logger.warning(
                "Fare estimation unavailable; returning fallback estimate",
                extra={"origin": origin.name, "destination": destination.name, "reason": str(exc)},
            )
        except Exception:
            logger.exception(
                "Unexpected error estimating fare; returning fallback estimate",
                extra={"origin": origin.name, "destination": destination.name},
            )
        return fallback_estimate()

    def get_pricing_insights(self, estimate: FareEstimate) -> List[str]:
        return pricing_insights(estimate)

    def _estimate(
        self,
        origin: NamedCoordinate,
        destination: NamedCoordinate,
        rider_location: Optional[Coordinate],
    ) -> FareEstimate:
        weather_point = rider_location or origin
        weather_result, routes_result = self._fetch_upstream(weather_point, origin, destination)

        routes = routes_result.value
        if not routes:
            raise EstimationUnavailable("route provider returned no routes")

        primary, alternatives = routes[0], tuple(routes[1:])
        defaulted = [r.error.provider for r in (weather_result, routes_result) if r.error is not None]

        t_mult = time_multiplier(fractional_hour(self._clock()))
        w_mult = weather_multiplier(weather_result.value)
        tr_mult = traffic_multiplier(primary.congestion)
        d_mult = demand_multiplier(t_mult, w_mult)

        recommended = self._recommend_operator(origin, destination, primary, defaulted)
        s_mult = recommended.price_multiplier if recommended is not None else 1.0

        base = calculate_base_fare(primary.distance_km)
        factors = PricingFactors(
            base_fare=base,
            time_multiplier=t_mult,
            weather_multiplier=w_mult,
            traffic_multiplier=tr_mult,
            demand_multiplier=d_mult,
            sacco_multiplier=s_mult,
        )
        raw = unrounded_fare(factors)

        estimate = FareEstimate(
            estimated_fare=round_fare(raw),
            base_fare=base,
            factors=factors,
            breakdown=build_breakdown(factors),
            recommended_operator=recommended,
            alternative_routes=alternatives,
            degraded=False,
            defaulted_sources=tuple(defaulted),
        )
        logger.info(
            "Estimated fare",
            extra={
                "origin": origin.name,
                "destination": destination.name,
                "route_id": primary.id,
                "distance_km": primary.distance_km,
                "fare": estimate.estimated_fare,
                "defaulted_sources": defaulted,
            },
        )
        return estimate

    def _recommend_operator(
        self,
        origin: NamedCoordinate,
        destination: NamedCoordinate,
        primary: RouteCandidate,
        defaulted: list[str],
    ) -> Operator | None:
        route_key = route_key_for(origin.name, destination.name)
        try:
            operators = self.operator_directory.fetch_operators(route_key)
        except Exception as exc:
            logger.warning("Operator lookup failed; pricing without an operator",
                           extra={"route_key": route_key, "error": str(exc)})
            defaulted.append("operators")
            return None
        return select_best_operator(operators, primary)

    def _fetch_upstream(
        self,
        weather_point: Coordinate,
        origin: Coordinate,
        destination: Coordinate,
    ) -> Tuple[ProviderResult[WeatherObservation], ProviderResult[List[RouteCandidate]]]:
        """Fetch weather and routes concurrently under one shared deadline."""
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="fare-upstream")
        try:
            weather_future = executor.submit(self.weather_provider.fetch_weather, weather_point)
            routes_future = executor.submit(self.route_provider.fetch_routes, origin, destination)
            deadline = time.monotonic() + self.provider_timeout

            weather = self._await_provider(
                weather_future, deadline, self.weather_provider.name, self.weather_provider.default_weather
            )
            routes = self._await_provider(
                routes_future, deadline, self.route_provider.name, self.route_provider.default_routes
            )
        finally:
            # a provider stuck past the deadline keeps its thread; don't block on it
            executor.shutdown(wait=False, cancel_futures=True)
        return weather, routes

    def _await_provider(
        self,
        future: Future,
        deadline: float,
        name: str,
        default: Callable[[], T],
    ) -> ProviderResult[T]:
        remaining = max(0.0, deadline - time.monotonic())
        try:
            return future.result(timeout=remaining)
        except FuturesTimeout:
            logger.warning(
                "Provider timed out; using its default data",
                extra={"provider": name, "timeout_s": self.provider_timeout},
            )
            return ProviderResult(default(), ProviderError(name, f"timed out after {self.provider_timeout}s"))
