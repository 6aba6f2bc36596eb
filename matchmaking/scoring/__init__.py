"""Importance weighting, directional scoring, section aggregation, pair scores and eligibility."""

from .importance import (
    ImportanceWeighting,
    importance_weight,
    response_weight,
    apply_importance_weighting,
    combine_importance,
)
from .directional import DirectionalAdjustment, directional_multiplier, apply_directional_scoring
from .sections import section_score, score_question, score_direction
from .pair_score import (
    mutual_score,
    calculate_pair_score,
    mutuality_bounds_hold,
    score_pair,
    pair_breakdown,
)
from .eligibility import (
    BestScore,
    EligibilityReport,
    find_best_scores,
    check_eligibility,
    filter_eligible,
)

__all__ = [
    "ImportanceWeighting",
    "importance_weight",
    "response_weight",
    "apply_importance_weighting",
    "combine_importance",
    "DirectionalAdjustment",
    "directional_multiplier",
    "apply_directional_scoring",
    "section_score",
    "score_question",
    "score_direction",
    "mutual_score",
    "calculate_pair_score",
    "mutuality_bounds_hold",
    "score_pair",
    "pair_breakdown",
    "BestScore",
    "EligibilityReport",
    "find_best_scores",
    "check_eligibility",
    "filter_eligible",
]
