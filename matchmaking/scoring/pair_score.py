"""
Pair score construction.

Combines both directional scores into one symmetric score that leans
towards the weaker direction:

    pair = alpha * min(A->B, B->A) + (1 - alpha) * mean(A->B, B->A)

so min <= pair <= max always holds for alpha in [0, 1].
"""

import logging
from typing import Optional

from ..configs.settings import MatchingConfig
from ..questions.catalog import QuestionTable, question_sort_key
from ..schema import (
    Candidate,
    DirectionalBreakdown,
    PairScore,
    PairScoreDiagnostics,
    QuestionGap,
)
from ..similarity.dispatch import calculate_similarities
from .sections import score_direction

logger = logging.getLogger(__name__)

BOUND_TOLERANCE = 1e-9


def mutual_score(a_to_b: float, b_to_a: float, alpha: float) -> float:
    weaker = min(a_to_b, b_to_a)
    mean = (a_to_b + b_to_a) / 2
    return alpha * weaker + (1 - alpha) * mean


def calculate_pair_score(
    forward: DirectionalBreakdown,
    backward: DirectionalBreakdown,
    config: MatchingConfig,
) -> PairScore:
    """
    Build the pair score from both directional breakdowns.

    Args:
        forward: How well B satisfies A (from_id is A)
        backward: How well A satisfies B (from_id is B)
        config: Matching configuration (alpha and diagnostic thresholds)

    Returns:
        PairScore with diagnostics
    """
    a_to_b, b_to_a = forward.total, backward.total
    pair = mutual_score(a_to_b, b_to_a, config.mutuality_alpha)
    best = max(a_to_b, b_to_a)
    penalty = (best - pair) / best if best > 0 else 0.0

    gaps = [
        QuestionGap(
            question_id=question_id,
            score_a=forward.question_scores[question_id].final_similarity,
            score_b=backward.question_scores[question_id].final_similarity,
        )
        for question_id in sorted(forward.question_scores, key=question_sort_key)
        if question_id in backward.question_scores
    ]
    low = sorted(
        (g for g in gaps if g.average < config.low_score_threshold),
        key=lambda g: (g.average, question_sort_key(g.question_id)),
    )
    asymmetric = sorted(
        (g for g in gaps if g.difference > config.asymmetry_threshold),
        key=lambda g: (-g.difference, question_sort_key(g.question_id)),
    )

    return PairScore(
        a_id=forward.from_id,
        b_id=forward.to_id,
        score_a_to_b=a_to_b,
        score_b_to_a=b_to_a,
        pair_score=pair,
        diagnostics=PairScoreDiagnostics(
            mutuality_penalty=penalty,
            question_count=len(gaps),
            low_score_questions=tuple(low),
            asymmetric_preferences=tuple(asymmetric),
        ),
    )


def mutuality_bounds_hold(pair: PairScore) -> bool:
    low = min(pair.score_a_to_b, pair.score_b_to_a)
    high = max(pair.score_a_to_b, pair.score_b_to_a)
    return low - BOUND_TOLERANCE <= pair.pair_score <= high + BOUND_TOLERANCE


def score_pair(
    a: Candidate,
    b: Candidate,
    table: QuestionTable,
    config: MatchingConfig,
    text_similarity=None,
) -> PairScore:
    """
    Score an unordered pair end to end (similarity through pair score).

    The candidate with the smaller id is always side A, so the result does
    not depend on argument order.
    """
    if b.id < a.id:
        a, b = b, a
    similarities = calculate_similarities(a, b, table, text_similarity)
    forward = score_direction(a, b, similarities, table, config)
    backward = score_direction(b, a, similarities, table, config)
    pair = calculate_pair_score(forward, backward, config)
    logger.debug(
        f"Pair ({a.id}, {b.id}): {pair.score_a_to_b:.1f} / {pair.score_b_to_a:.1f} "
        f"-> {pair.pair_score:.1f}"
    )
    return pair


def pair_breakdown(pair_scores, a_id: str, b_id: str) -> Optional[PairScore]:
    """Look up the score of an unordered pair, None when it was not scored."""
    wanted = {a_id, b_id}
    for pair in pair_scores:
        if {pair.a_id, pair.b_id} == wanted:
            return pair
    return None
