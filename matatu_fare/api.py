"""HTTP API for fare estimates and operator lookups."""

from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from .config import settings
from .domain import Coordinate, FareEstimate, NamedCoordinate, Operator
from .operator_ranking import rank_operators
from .pricing import FarePricingEngine
from .providers import route_key_for
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="api")

router = APIRouter()
ENGINE = FarePricingEngine.from_settings(settings)


class FareRequest(BaseModel):
    """Trip to price. Weather is sampled at rider_location when given, else at origin."""
    origin: NamedCoordinate
    destination: NamedCoordinate
    rider_location: Optional[Coordinate] = None


class FareResponse(BaseModel):
    """Estimate plus the insight lines shown alongside it."""
    estimate: FareEstimate
    insights: List[str]


class RankedOperator(BaseModel):
    operator: Operator
    score: float


class OperatorsResponse(BaseModel):
    route_key: str
    operators: List[RankedOperator]


@router.post("/fare/estimate", response_model=FareResponse)
def estimate_fare(req: FareRequest):
    """Price a trip. Always 200 with a usable estimate; `estimate.degraded` flags the fallback."""
    logger.info(
        "Fare estimate requested",
        extra={"origin": req.origin.name, "destination": req.destination.name,
               "has_rider_location": req.rider_location is not None},
    )
    estimate = ENGINE.estimate_fare(req.origin, req.destination, req.rider_location)
    return FareResponse(estimate=estimate, insights=ENGINE.get_pricing_insights(estimate))


@router.get("/operators", response_model=OperatorsResponse)
def list_operators(
    origin: str = Query(min_length=1),
    destination: str = Query(min_length=1),
):
    """Operators serving a route, best-ranked first."""
    route_key = route_key_for(origin, destination)
    operators = ENGINE.operator_directory.fetch_operators(route_key)
    ranked = [RankedOperator(operator=op, score=round(score, 4)) for op, score in rank_operators(operators)]
    return OperatorsResponse(route_key=route_key, operators=ranked)
