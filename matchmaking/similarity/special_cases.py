"""
Similarity for questions that need their own rule.

- Love languages: weighted show/receive overlap in both directions
- Conflict resolution: a fixed compatibility matrix over six named styles
- Sleep schedule: "flexible" fits anyone, mismatched schedules score low
"""

from typing import Dict, FrozenSet, Tuple

from ..questions.catalog import CONFLICT_STYLES, QuestionSpec
from ..schema import LoveLanguageAnswer, PreferenceType, QuestionResponse
from .functions import bidirectional

DEFAULT_LOVE_LANGUAGE_WEIGHTS = (0.6, 0.4)

IRREGULAR_SCHEDULE = "irregular"
MISMATCHED_SCHEDULES = 0.3
BOTH_IRREGULAR = 0.6

_CONFLICT_ROWS = (
    # compromise, solution, emotion, analysis, space, direct
    (1.0, 0.9, 0.7, 0.7, 0.6, 0.8),
    (0.9, 1.0, 0.5, 0.9, 0.6, 0.9),
    (0.7, 0.5, 1.0, 0.4, 0.3, 0.6),
    (0.7, 0.9, 0.4, 1.0, 0.7, 0.7),
    (0.6, 0.6, 0.3, 0.7, 1.0, 0.2),
    (0.8, 0.9, 0.6, 0.7, 0.2, 1.0),
)

CONFLICT_COMPATIBILITY: Dict[Tuple[str, str], float] = {
    (row_style, column_style): _CONFLICT_ROWS[i][j]
    for i, row_style in enumerate(CONFLICT_STYLES)
    for j, column_style in enumerate(CONFLICT_STYLES)
}


def _styles(answer) -> FrozenSet[str]:
    if isinstance(answer, frozenset):
        return answer
    return frozenset({answer})


def conflict_matrix_score(a_styles: FrozenSet[str], b_styles: FrozenSet[str]) -> float:
    """Best matrix entry over every pair of styles; unknown styles score 0."""
    scores = [
        CONFLICT_COMPATIBILITY.get((x, y), 0.0)
        for x in sorted(a_styles)
        for y in sorted(b_styles)
    ]
    return max(scores, default=0.0)


def _conflict_side(spec, own, peer) -> float:
    mine, theirs = _styles(own.answer), _styles(peer.answer)
    kind = own.preference.type
    if kind is PreferenceType.SPECIFIC_VALUES:
        return 1.0 if theirs & own.preference.values else 0.0
    if kind is PreferenceType.SAME:
        return 1.0 if mine & theirs else 0.0
    return conflict_matrix_score(mine, theirs)


def conflict_resolution_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    return bidirectional(spec, a, b, _conflict_side)


def _coverage(wanted: FrozenSet[str], shown: FrozenSet[str]) -> float:
    if not wanted:
        return 1.0
    return len(wanted & shown) / len(wanted)


def _love_language_side(spec, own, peer) -> float:
    mine, theirs = own.answer, peer.answer
    if not isinstance(mine, LoveLanguageAnswer) or not isinstance(theirs, LoveLanguageAnswer):
        return 0.0
    wanted = mine.receive
    if own.preference.type is PreferenceType.SPECIFIC_VALUES and own.preference.values:
        wanted = own.preference.values
    show_weight, receive_weight = spec.component_weights or DEFAULT_LOVE_LANGUAGE_WEIGHTS
    return (
        show_weight * _coverage(theirs.receive, mine.show)
        + receive_weight * _coverage(wanted, theirs.show)
    )


def love_language_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    """
    Weighted show/receive fit, weaker side wins.

    Each side scores show_weight * (share of what the peer wants to receive
    that it shows) + receive_weight * (share of what it wants that the
    peer shows).
    """
    return bidirectional(spec, a, b, _love_language_side)


def sleep_schedule_score(spec: QuestionSpec, a: str, b: str) -> float:
    """Flexible fits anyone; otherwise equal schedules fit and different ones mostly don't."""
    if spec.wildcard is not None and spec.wildcard in (a, b):
        return 1.0
    if a not in spec.options or b not in spec.options:
        return 0.0
    if a == b:
        return BOTH_IRREGULAR if a == IRREGULAR_SCHEDULE else 1.0
    return MISMATCHED_SCHEDULES


def _sleep_side(spec, own, peer) -> float:
    if own.preference.type is PreferenceType.SPECIFIC_VALUES:
        if peer.answer == spec.wildcard or peer.answer in own.preference.values:
            return 1.0
        return 0.0
    return sleep_schedule_score(spec, own.answer, peer.answer)


def sleep_schedule_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    return bidirectional(spec, a, b, _sleep_side)
