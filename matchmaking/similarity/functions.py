"""
Similarity functions for the standard question kinds.

Every function takes the question spec and both responses and returns a
value in [0, 1]. Each is written as a one-sided rule ("how well does the
peer satisfy my preference?") and made symmetric by taking the minimum of
both sides:

    similarity(a, b) = min(side(a, b), side(b, a))

A side whose preference is doesnt_matter is fully satisfied. A peer who
chose "prefer not to answer" satisfies nothing else.
"""

from typing import Any, Callable, FrozenSet, Optional

from ..filters.hard_filters import accepts_substances, answer_position, answer_values
from ..questions.catalog import SUBSTANCE_FREQUENCIES, QuestionSpec
from ..schema import PREFER_NOT_TO_ANSWER, PreferenceType, QuestionResponse, SubstanceUseAnswer

Side = Callable[[QuestionSpec, QuestionResponse, QuestionResponse], float]

# Partial credit when a more/less preference points the wrong way
DIRECTIONAL_PARTIAL_CREDIT = 0.5


def bidirectional(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse, side: Side) -> float:
    """Combine a one-sided rule into a symmetric similarity."""
    if a.preference.is_wildcard and b.preference.is_wildcard:
        return 1.0
    return min(_guarded(spec, a, b, side), _guarded(spec, b, a, side))


def _guarded(spec: QuestionSpec, own: QuestionResponse, peer: QuestionResponse, side: Side) -> float:
    if own.preference.is_wildcard:
        return 1.0
    if peer.answer == PREFER_NOT_TO_ANSWER or own.answer == PREFER_NOT_TO_ANSWER:
        return 0.0
    return side(spec, own, peer)


def jaccard(a: FrozenSet[Any], b: FrozenSet[Any]) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def linear_closeness(spec: QuestionSpec, own: Any, peer: Any) -> Optional[float]:
    """1 - distance / maxDistance on the question's scale, None off-scale."""
    own_position = answer_position(spec, own)
    peer_position = answer_position(spec, peer)
    if own_position is None or peer_position is None:
        return None
    return 1.0 - abs(own_position - peer_position) / spec.max_distance


def _within_range(value: Any, bounds) -> bool:
    low, high = bounds
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return (low is None or value >= low) and (high is None or value <= high)


def _specific(own: QuestionResponse, peer: QuestionResponse) -> float:
    preference = own.preference
    if preference.value_range is not None:
        return 1.0 if _within_range(peer.answer, preference.value_range) else 0.0
    return 1.0 if answer_values(peer.answer) & preference.values else 0.0


def _directional_side(spec: QuestionSpec, own: QuestionResponse, peer: QuestionResponse) -> float:
    """more/less: full credit when the peer is on the wanted side or level."""
    own_position = answer_position(spec, own.answer)
    peer_position = answer_position(spec, peer.answer)
    if own_position is None or peer_position is None:
        return 0.0
    if own.preference.type is PreferenceType.MORE:
        satisfied = peer_position >= own_position
    else:
        satisfied = peer_position <= own_position
    return 1.0 if satisfied else DIRECTIONAL_PARTIAL_CREDIT


def _categorical_side(spec, own, peer) -> float:
    kind = own.preference.type
    if kind is PreferenceType.SPECIFIC_VALUES:
        return _specific(own, peer)
    if kind is PreferenceType.DIFFERENT:
        return 1.0 if own.answer != peer.answer else 0.0
    if kind is PreferenceType.COMPLEMENT and spec.complement_pairs:
        return 1.0 if spec.is_complement(own.answer, peer.answer) else 0.0
    return 1.0 if own.answer == peer.answer else 0.0


def categorical_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    """Exact-match categories: same, different, or a specific accepted set."""
    return bidirectional(spec, a, b, _categorical_side)


def _ordinal_side(spec, own, peer) -> float:
    kind = own.preference.type
    if kind is PreferenceType.SPECIFIC_VALUES:
        return _specific(own, peer)
    if kind in (PreferenceType.MORE, PreferenceType.LESS):
        return _directional_side(spec, own, peer)
    closeness = linear_closeness(spec, own.answer, peer.answer)
    if closeness is None:
        return 0.0
    if kind is PreferenceType.SAME:
        return 1.0 if closeness == 1.0 else 0.0
    if kind in (PreferenceType.DIFFERENT, PreferenceType.COMPLEMENT):
        return 1.0 - closeness
    return closeness


def ordinal_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    """
    Ordered scales.

    same requires the same option, similar decays linearly with distance
    over the option order. Answers off the scale score 0. A wildcard answer
    on either side (e.g. "whatever-natural" texting) scores 1.
    """
    if spec.wildcard is not None and spec.wildcard in (a.answer, b.answer):
        return 1.0
    return bidirectional(spec, a, b, _ordinal_side)


def _multi_select_side(spec, own, peer) -> float:
    kind = own.preference.type
    if kind is PreferenceType.SPECIFIC_VALUES:
        return _specific(own, peer)
    mine, theirs = answer_values(own.answer), answer_values(peer.answer)
    overlap = jaccard(mine, theirs)
    if kind is PreferenceType.SIMILAR and mine & theirs:
        return max(overlap, 0.5)
    if kind is PreferenceType.DIFFERENT:
        return 1.0 - overlap
    return overlap


def multi_select_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    """Set answers: Jaccard overlap, floored at 0.5 for similar when any overlap."""
    return bidirectional(spec, a, b, _multi_select_side)


def _single_vs_multi_side(spec, own, peer) -> float:
    kind = own.preference.type
    if kind is PreferenceType.SPECIFIC_VALUES:
        return _specific(own, peer)
    shared = answer_values(own.answer) & answer_values(peer.answer)
    if kind is PreferenceType.DIFFERENT:
        return 0.0 if shared else 1.0
    return 1.0 if shared else 0.0


def single_vs_multi_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    """A single answer is acceptable iff it is in the peer's acceptable set."""
    return bidirectional(spec, a, b, _single_vs_multi_side)


def substance_base_similarity(a: SubstanceUseAnswer, b: SubstanceUseAnswer) -> float:
    """
    Symmetric similarity of two substance-use answers.

    Both abstaining scores 1, exactly one abstaining scores 0. Otherwise the
    mean of the substance overlap ratio and the frequency proximity.
    """
    if a.uses_nothing and b.uses_nothing:
        return 1.0
    if a.uses_nothing or b.uses_nothing:
        return 0.0

    overlap = len(a.substances & b.substances) / max(len(a.substances), len(b.substances))
    if a.frequency not in SUBSTANCE_FREQUENCIES or b.frequency not in SUBSTANCE_FREQUENCIES:
        return overlap
    distance = abs(
        SUBSTANCE_FREQUENCIES.index(a.frequency) - SUBSTANCE_FREQUENCIES.index(b.frequency)
    )
    frequency_proximity = 1.0 - distance / (len(SUBSTANCE_FREQUENCIES) - 1)
    return (overlap + frequency_proximity) / 2


def _substance_side(spec, own, peer) -> float:
    mine, theirs = own.answer, peer.answer
    if not isinstance(mine, SubstanceUseAnswer) or not isinstance(theirs, SubstanceUseAnswer):
        return 0.0
    kind = own.preference.type
    if kind is PreferenceType.SPECIFIC_VALUES:
        return 1.0 if accepts_substances(theirs, own.preference.values) else 0.0
    if kind in (PreferenceType.MORE, PreferenceType.LESS):
        if _directional_side(spec, own, peer) == 1.0:
            return 1.0
    base = substance_base_similarity(mine, theirs)
    if kind is PreferenceType.DIFFERENT:
        return 1.0 - base
    return base


def substance_use_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    """Compound (substances, frequency) answers."""
    return bidirectional(spec, a, b, _substance_side)


def _directional_likert_side(spec, own, peer) -> float:
    kind = own.preference.type
    if kind is PreferenceType.SPECIFIC_VALUES:
        return _specific(own, peer)
    if kind in (PreferenceType.MORE, PreferenceType.LESS):
        return _directional_side(spec, own, peer)
    closeness = linear_closeness(spec, own.answer, peer.answer)
    if closeness is None:
        return 0.0
    if kind is PreferenceType.SAME:
        return 1.0 if closeness == 1.0 else 0.0
    if kind in (PreferenceType.COMPLEMENT, PreferenceType.DIFFERENT):
        return 1.0 - closeness
    return closeness


def directional_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    """
    Likert questions with direction (exercise, planning, social energy).

    more/less give full credit when the peer sits on the wanted side and
    partial credit otherwise; complement rewards distance; a numeric range
    preference uses min/max containment.
    """
    if spec.wildcard is not None and spec.wildcard in (a.answer, b.answer):
        return 1.0
    return bidirectional(spec, a, b, _directional_likert_side)


def _different_side(spec, own, peer) -> float:
    kind = own.preference.type
    mine, theirs = own.answer, peer.answer
    if kind is PreferenceType.SPECIFIC_VALUES:
        return _specific(own, peer)
    if kind is PreferenceType.COMPLEMENT and spec.complement_pairs:
        return 1.0 if spec.is_complement(mine, theirs) else 0.0
    if kind in (PreferenceType.DIFFERENT, PreferenceType.COMPLEMENT):
        if isinstance(mine, frozenset) or isinstance(theirs, frozenset):
            return 1.0 - jaccard(answer_values(mine), answer_values(theirs))
        return 1.0 if mine != theirs else 0.0
    return 1.0 if answer_values(mine) == answer_values(theirs) else 0.0


def different_preference_similarity(spec: QuestionSpec, a: QuestionResponse, b: QuestionResponse) -> float:
    """Questions where respondents may want a partner unlike them."""
    return bidirectional(spec, a, b, _different_side)
