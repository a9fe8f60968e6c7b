"""Domain vocabulary and schemas for matatu fare estimation.

Everything that crosses the boundary between the provider clients, the pricing
engine and the HTTP layer is defined here as an immutable Pydantic model. No
pricing logic lives in this module.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class _FrozenModel(BaseModel):
    """Base model: unknown fields rejected, instances immutable."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class WeatherCondition(str, Enum):
    """Coarse weather condition used by the weather multiplier."""
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    STORMY = "stormy"


class CongestionLevel(str, Enum):
    """Traffic level on a route."""
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class Coordinate(_FrozenModel):
    """A point on the globe."""
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def as_query(self) -> str:
        """Render as the "lat,lng" form map and weather APIs expect."""
        return f"{self.latitude},{self.longitude}"


class NamedCoordinate(Coordinate):
    """A coordinate with the display name the rider typed or picked."""
    name: str = Field(min_length=1)


class WeatherObservation(_FrozenModel):
    """Current weather at a point (metric units)."""
    temperature: float  # °C
    humidity: float  # %
    precipitation: float  # mm
    wind_speed: float  # km/h
    condition: WeatherCondition
    visibility: float  # km


class RouteCandidate(_FrozenModel):
    """One candidate route between origin and destination."""
    id: str
    name: str
    distance_km: float = Field(ge=0.0)
    duration_minutes: float = Field(ge=0.0)
    congestion: CongestionLevel
    safety_score: float = Field(ge=0.0, le=10.0)
    points: Tuple[Coordinate, ...] = ()


class Operator(_FrozenModel):
    """A SACCO running matatus, with the quality metrics used for ranking."""
    id: str
    name: str
    rating: float = Field(ge=0.0, le=5.0)
    reliability: float = Field(ge=0.0, le=10.0)
    safety_score: float = Field(ge=0.0, le=10.0)
    average_wait_minutes: float = Field(ge=0.0)
    served_routes: Tuple[str, ...] = ()
    price_multiplier: float = Field(default=1.0, ge=0.0)


class PricingFactors(_FrozenModel):
    """Base fare plus the multiplicative terms, in application order."""
    base_fare: float
    time_multiplier: float = 1.0
    weather_multiplier: float = 1.0
    traffic_multiplier: float = 1.0
    demand_multiplier: float = 1.0
    sacco_multiplier: float = 1.0


class FareBreakdown(_FrozenModel):
    """Incremental currency delta contributed by each pricing stage."""
    base: float
    time_adjustment: float = 0.0
    weather_adjustment: float = 0.0
    traffic_adjustment: float = 0.0
    demand_adjustment: float = 0.0
    sacco_adjustment: float = 0.0

    def total(self) -> float:
        """Unrounded fare reconstructed from the stages."""
        return (
            self.base
            + self.time_adjustment
            + self.weather_adjustment
            + self.traffic_adjustment
            + self.demand_adjustment
            + self.sacco_adjustment
        )


class FareEstimate(_FrozenModel):
    """Response value for one pricing request.

    `degraded` is True only for the fixed fallback estimate returned when no
    route data could be obtained. `defaulted_sources` names providers whose
    default data was used in an otherwise normal estimate.
    """
    estimated_fare: int
    base_fare: float
    factors: PricingFactors
    breakdown: FareBreakdown
    recommended_operator: Operator | None = None
    alternative_routes: Tuple[RouteCandidate, ...] = ()
    degraded: bool = False
    defaulted_sources: Tuple[str, ...] = ()
