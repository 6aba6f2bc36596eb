"""
Importance weighting.

Importance levels map onto a numeric scale (default 0, 0.5, 1.0, 2.0),
clamped to [0, 2]. Both sides' weights combine into one weight per
question:

- max (default): a question that matters a lot to either side counts fully
- average: the mean of both weights

The weighted value raw * weight is what section means are built from.
"""

from dataclasses import dataclass
from typing import Optional

from ..configs.settings import MatchingConfig, MAX_IMPORTANCE_WEIGHT
from ..schema import ImportanceLevel, QuestionResponse


@dataclass(frozen=True)
class ImportanceWeighting:
    weight_self: float
    weight_peer: float
    weight: float
    weighted: float


def importance_weight(level: ImportanceLevel, config: MatchingConfig) -> float:
    weight = config.importance_weights[level.value]
    return min(max(float(weight), 0.0), MAX_IMPORTANCE_WEIGHT)


def response_weight(response: Optional[QuestionResponse], config: MatchingConfig) -> float:
    """Weight of a response; an absent response carries the default importance."""
    if response is None:
        return importance_weight(ImportanceLevel(config.default_importance), config)
    return importance_weight(response.importance, config)


def combine_importance(weight_a: float, weight_b: float, mode: str = "max") -> float:
    if mode == "average":
        return (weight_a + weight_b) / 2
    return max(weight_a, weight_b)


def apply_importance_weighting(
    raw: float, weight_self: float, weight_peer: float, mode: str = "max"
) -> ImportanceWeighting:
    weight = combine_importance(weight_self, weight_peer, mode)
    return ImportanceWeighting(
        weight_self=weight_self,
        weight_peer=weight_peer,
        weight=weight,
        weighted=raw * weight,
    )
