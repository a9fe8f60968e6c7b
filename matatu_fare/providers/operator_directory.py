"""Read-only directory of SACCOs and the routes they serve."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Sequence

from pydantic import TypeAdapter

from matatu_fare.domain import Operator
from matatu_fare.providers.base import OperatorDirectory
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="operator_directory")

DEFAULT_OPERATORS: tuple[Operator, ...] = (
    Operator(
        id="sacco_1",
        name="City Hoppa",
        rating=4.2,
        reliability=8.5,
        safety_score=8.0,
        average_wait_minutes=8,
        served_routes=("CBD to Westlands", "CBD to Buruburu"),
        price_multiplier=1.0,
    ),
    Operator(
        id="sacco_2",
        name="Double M",
        rating=4.0,
        reliability=7.8,
        safety_score=7.5,
        average_wait_minutes=12,
        served_routes=("CBD to Rongai", "CBD to Westlands"),
        price_multiplier=0.9,
    ),
    Operator(
        id="sacco_3",
        name="Kenya Bus",
        rating=3.8,
        reliability=7.2,
        safety_score=7.0,
        average_wait_minutes=15,
        served_routes=("CBD to Buruburu", "CBD to Rongai"),
        price_multiplier=0.8,
    ),
)

_OPERATOR_LIST = TypeAdapter(List[Operator])


def route_key_for(origin_name: str, destination_name: str) -> str:
    """Conventional lookup key, e.g. "CBD to Westlands"."""
    return f"{origin_name.strip()} to {destination_name.strip()}"


class StaticOperatorDirectory(OperatorDirectory):
    """In-memory operator directory; order of `operators` is preserved in lookups."""

    def __init__(self, operators: Sequence[Operator] = DEFAULT_OPERATORS) -> None:
        self._operators: tuple[Operator, ...] = tuple(operators)

    @classmethod
    def from_json(cls, path: str | Path) -> "StaticOperatorDirectory":
        """Load operators from a JSON array of Operator objects."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        operators = _OPERATOR_LIST.validate_python(raw)
        logger.info("Loaded operator directory", extra={"path": str(path), "operators_count": len(operators)})
        return cls(operators)

    @property
    def operators(self) -> tuple[Operator, ...]:
        return self._operators

    def fetch_operators(self, route_key: str) -> List[Operator]:
        """Operators with a served route containing `route_key` (case-insensitive)."""
        needle = route_key.lower()
        matches = [
            op for op in self._operators
            if any(needle in served.lower() for served in op.served_routes)
        ]
        logger.debug("Operator lookup", extra={"route_key": route_key, "matches": len(matches)})
        return matches
