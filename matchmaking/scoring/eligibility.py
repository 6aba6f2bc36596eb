"""
Eligibility filter.

A scored pair may become a matching edge only if all three gates pass:

1. Absolute: pair_score >= t_min
2. Relative A: A->B >= beta * best(A)
3. Relative B: B->A >= beta * best(B)

best(X) is the highest pair score X reaches with anyone in the batch, so
the gate needs every pair scored first. Candidates with scored pairs but
no eligible pair are reported as perfectionists.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence, Tuple

from ..configs.settings import MatchingConfig
from ..schema import EligibilityResult, EligiblePair, PairScore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BestScore:
    """The highest pair score a candidate reaches, and with whom."""
    score: float
    partner_id: str


@dataclass(frozen=True)
class EligibilityReport:
    """
    Outcome of the eligibility filter over a whole batch.

    Attributes:
        eligible: Pairs that passed every gate, in scoring order
        results: (a_id, b_id) -> EligibilityResult for every scored pair
        best_scores: Candidate id -> BestScore
        failed_absolute: Pairs failing the absolute floor
        failed_relative_a: Pairs failing side A's relative floor
        failed_relative_b: Pairs failing side B's relative floor
        perfectionists: Candidates with scored pairs but no eligible pair
    """
    eligible: Tuple[EligiblePair, ...]
    results: Dict[Tuple[str, str], EligibilityResult] = field(default_factory=dict)
    best_scores: Dict[str, BestScore] = field(default_factory=dict)
    failed_absolute: int = 0
    failed_relative_a: int = 0
    failed_relative_b: int = 0
    perfectionists: Tuple[str, ...] = ()

    def result_for(self, a_id: str, b_id: str) -> Optional[EligibilityResult]:
        return self.results.get((a_id, b_id)) or self.results.get((b_id, a_id))


def find_best_scores(pair_scores: Iterable[PairScore]) -> Dict[str, BestScore]:
    """
    Find each candidate's best pair score across all their scored pairs.

    Ties go to the partner with the smaller id.
    """
    best: Dict[str, BestScore] = {}
    for pair in pair_scores:
        for user_id in (pair.a_id, pair.b_id):
            score = pair.pair_score
            partner_id = pair.partner_of(user_id)
            current = best.get(user_id)
            if (
                current is None
                or score > current.score
                or (score == current.score and partner_id < current.partner_id)
            ):
                best[user_id] = BestScore(score=score, partner_id=partner_id)
    return best


def check_eligibility(
    pair: PairScore, best_a: float, best_b: float, config: MatchingConfig
) -> EligibilityResult:
    """
    Apply the three gates to one pair.

    Args:
        pair: Scored pair
        best_a: Best pair score side A reaches with anyone
        best_b: Best pair score side B reaches with anyone
        config: Matching configuration (t_min and beta)

    Returns:
        EligibilityResult
    """
    threshold_a = config.beta * best_a
    threshold_b = config.beta * best_b

    passed_absolute = pair.pair_score >= config.t_min
    passed_a = pair.score_a_to_b >= threshold_a
    passed_b = pair.score_b_to_a >= threshold_b

    reasons = []
    if not passed_absolute:
        reasons.append(f"Pair score {pair.pair_score:.1f} below minimum {config.t_min:.1f}")
    if not passed_a:
        reasons.append(
            f"{pair.a_id} scores {pair.score_a_to_b:.1f}, below {config.beta:.0%} "
            f"of their best ({best_a:.1f})"
        )
    if not passed_b:
        reasons.append(
            f"{pair.b_id} scores {pair.score_b_to_a:.1f}, below {config.beta:.0%} "
            f"of their best ({best_b:.1f})"
        )

    return EligibilityResult(
        eligible=passed_absolute and passed_a and passed_b,
        passed_absolute=passed_absolute,
        passed_relative_a=passed_a,
        passed_relative_b=passed_b,
        t_min=config.t_min,
        threshold_a=threshold_a,
        threshold_b=threshold_b,
        failure_reasons=tuple(reasons),
    )


def filter_eligible(pair_scores: Sequence[PairScore], config: MatchingConfig) -> EligibilityReport:
    """
    Gate every scored pair of a batch.

    Args:
        pair_scores: Every scored pair of the batch
        config: Matching configuration

    Returns:
        EligibilityReport
    """
    best_scores = find_best_scores(pair_scores)

    eligible = []
    results: Dict[Tuple[str, str], EligibilityResult] = {}
    failed_absolute = failed_a = failed_b = 0
    has_eligible = set()

    for pair in pair_scores:
        result = check_eligibility(
            pair,
            best_scores[pair.a_id].score,
            best_scores[pair.b_id].score,
            config,
        )
        results[(pair.a_id, pair.b_id)] = result
        failed_absolute += not result.passed_absolute
        failed_a += not result.passed_relative_a
        failed_b += not result.passed_relative_b
        if result.eligible:
            eligible.append(EligiblePair(pair=pair, eligibility=result))
            has_eligible.update((pair.a_id, pair.b_id))

    perfectionists = tuple(sorted(set(best_scores) - has_eligible))

    logger.info(f"Eligible pairs: {len(eligible)} of {len(pair_scores)}")
    logger.info(
        f"Failed gates: absolute={failed_absolute}, relative A={failed_a}, relative B={failed_b}"
    )
    if perfectionists:
        logger.info(f"Perfectionists (no eligible pairs): {len(perfectionists)}")

    return EligibilityReport(
        eligible=tuple(eligible),
        results=results,
        best_scores=best_scores,
        failed_absolute=failed_absolute,
        failed_relative_a=failed_a,
        failed_relative_b=failed_b,
        perfectionists=perfectionists,
    )
