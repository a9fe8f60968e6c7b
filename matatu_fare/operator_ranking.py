"""Deterministic SACCO ranking.

Each operator gets a weighted sum of normalized sub-scores. Ranking is a
stable sort, so operators with equal scores keep their directory order.
"""

from __future__ import annotations

from typing import Sequence

from matatu_fare.domain import Operator, RouteCandidate

RELIABILITY_WEIGHT = 0.30
SAFETY_WEIGHT = 0.25
RATING_WEIGHT = 0.20
WAIT_WEIGHT = 0.15
PRICE_WEIGHT = 0.10

# Waits at or beyond this many minutes score zero.
WAIT_SATURATION_MINUTES = 30.0


def score_operator(operator: Operator) -> float:
    """Weighted score; the price term exceeds 1 for multipliers below 1."""
    reliability = operator.reliability / 10
    safety = operator.safety_score / 10
    rating = operator.rating / 5
    wait = max(0.0, 1 - operator.average_wait_minutes / WAIT_SATURATION_MINUTES)
    price = max(0.0, 2 - operator.price_multiplier)

    return (
        reliability * RELIABILITY_WEIGHT
        + safety * SAFETY_WEIGHT
        + rating * RATING_WEIGHT
        + wait * WAIT_WEIGHT
        + price * PRICE_WEIGHT
    )


def rank_operators(candidates: Sequence[Operator]) -> list[tuple[Operator, float]]:
    """Operators paired with their scores, best first."""
    scored = [(op, score_operator(op)) for op in candidates]
    # sorted() is stable: ties keep input order
    return sorted(scored, key=lambda pair: -pair[1])


def select_best_operator(candidates: Sequence[Operator], route: RouteCandidate | None = None) -> Operator | None:
    """
    Return the highest-scoring operator, or None when there are no candidates.

    `route` is accepted so route-specific signals can be folded in later; the
    current score depends on operator metrics only.
    """
    if not candidates:
        return None
    best, _score = rank_operators(candidates)[0]
    return best
