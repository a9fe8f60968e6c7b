"""Interfaces and wrappers for the upstream data providers.

Providers never raise to the pricing engine. A fetch returns a ProviderResult
whose value is always usable; when the upstream call failed the value is the
provider's own default data and `error` says what went wrong.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Protocol, TypeVar

from matatu_fare.domain import Coordinate, Operator, RouteCandidate, WeatherObservation
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="providers/base")

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderError:
    """Why a provider served default data."""
    provider: str
    message: str


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    """Value from a provider plus the error, if the value is a default."""
    value: T
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class WeatherProvider(Protocol):
    """Anything that can report current weather at a coordinate."""
    name: str

    def fetch_weather(self, coordinate: Coordinate) -> ProviderResult[WeatherObservation]:
        """Return the current observation, or the default reading on failure."""
        ...

    def default_weather(self) -> WeatherObservation:
        """Neutral reading used when the upstream is unavailable."""
        ...


class RouteProvider(Protocol):
    """Anything that can list candidate routes between two points."""
    name: str

    def fetch_routes(self, origin: Coordinate, destination: Coordinate) -> ProviderResult[List[RouteCandidate]]:
        """Return candidate routes (primary first), or the mock routes on failure."""
        ...

    def default_routes(self) -> List[RouteCandidate]:
        """Canned routes used when the upstream is unavailable."""
        ...


class OperatorDirectory(Protocol):
    """Read-only lookup of operators serving a route."""

    def fetch_operators(self, route_key: str) -> List[Operator]:
        """Return operators whose served routes match `route_key` (may be empty)."""
        ...


@dataclass
class CallableWeatherProvider(WeatherProvider):
    """Wrap a raw weather fetch callable and absorb its failures."""

    fetch: Callable[[Coordinate], WeatherObservation]
    default: Callable[[], WeatherObservation]
    name: str = "weather"

    def fetch_weather(self, coordinate: Coordinate) -> ProviderResult[WeatherObservation]:
        try:
            return ProviderResult(self.fetch(coordinate))
        except Exception as exc:
            logger.warning(
                "Weather fetch failed; serving default reading",
                extra={"provider": self.name, "error": str(exc)},
            )
            return ProviderResult(self.default(), ProviderError(self.name, str(exc)))

    def default_weather(self) -> WeatherObservation:
        return self.default()


@dataclass
class CallableRouteProvider(RouteProvider):
    """Wrap a raw route fetch callable and absorb its failures.

    An empty list from the callable is passed through unchanged; only
    exceptions are replaced by the default routes.
    """

    fetch: Callable[[Coordinate, Coordinate], List[RouteCandidate]]
    default: Callable[[], List[RouteCandidate]]
    name: str = "routes"

    def fetch_routes(self, origin: Coordinate, destination: Coordinate) -> ProviderResult[List[RouteCandidate]]:
        try:
            return ProviderResult(list(self.fetch(origin, destination)))
        except Exception as exc:
            logger.warning(
                "Route fetch failed; serving mock routes",
                extra={"provider": self.name, "error": str(exc)},
            )
            return ProviderResult(self.default(), ProviderError(self.name, str(exc)))

    def default_routes(self) -> List[RouteCandidate]:
        return self.default()
