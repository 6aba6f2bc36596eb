"""
Directional scoring.

For directional questions the scoring side's own more/less preference is
re-applied after importance weighting:

    more: peer >= self  -> boost,   otherwise penalty
    less: peer <= self  -> boost,   otherwise penalty
    other preferences   -> 1.0 (the ordinal similarity already applies)

Only the scoring side's preference is used, so A->B and B->A can differ.
The similarity already gives an unmet more/less preference partial credit
(0.5), and the penalty applies on top of it: 0.5 * 0.7 = 0.35 by default.
"""

from dataclasses import dataclass
from typing import Optional

from ..configs.settings import MatchingConfig
from ..filters.hard_filters import answer_position
from ..questions.catalog import QuestionKind, QuestionSpec
from ..schema import PreferenceType, QuestionResponse
from .importance import ImportanceWeighting


@dataclass(frozen=True)
class DirectionalAdjustment:
    multiplier: float
    final_similarity: float
    weighted: float


def directional_multiplier(
    spec: QuestionSpec,
    own: Optional[QuestionResponse],
    peer: Optional[QuestionResponse],
    config: MatchingConfig,
) -> float:
    """
    Multiplier for the direction scored from `own`'s point of view.

    Args:
        spec: Question spec
        own: Scoring side's response
        peer: Scored side's response
        config: Matching configuration (boost and penalty)

    Returns:
        config.directional_boost, config.directional_penalty, or 1.0
    """
    if spec.kind is not QuestionKind.DIRECTIONAL or own is None or peer is None:
        return 1.0
    kind = own.preference.type
    if kind not in (PreferenceType.MORE, PreferenceType.LESS):
        return 1.0

    own_position = answer_position(spec, own.answer)
    peer_position = answer_position(spec, peer.answer)
    if own_position is None or peer_position is None:
        return 1.0

    if kind is PreferenceType.MORE:
        satisfied = peer_position >= own_position
    else:
        satisfied = peer_position <= own_position
    return config.directional_boost if satisfied else config.directional_penalty


def apply_directional_scoring(
    spec: QuestionSpec,
    own: Optional[QuestionResponse],
    peer: Optional[QuestionResponse],
    raw: float,
    weighting: ImportanceWeighting,
    config: MatchingConfig,
) -> DirectionalAdjustment:
    """
    Re-score one importance-weighted question from `own`'s side.

    The weighted value is scaled by the multiplier and kept within
    [0, weighting.weight], so the per-question score stays in [0, 1].
    """
    multiplier = directional_multiplier(spec, own, peer, config)
    weighted = min(max(weighting.weighted * multiplier, 0.0), weighting.weight)
    return DirectionalAdjustment(
        multiplier=multiplier,
        final_similarity=min(max(raw * multiplier, 0.0), 1.0),
        weighted=weighted,
    )
