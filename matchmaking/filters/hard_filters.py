"""
Hard filter stage.

Removes pairs that can never be matched, before any scoring happens.
Checks run in this order and stop at the first failing category:

1. Gender: each side's gender must be in the other's interested-in set
2. Campus: differing campuses need both sides willing to cross campuses
3. Age: each side's age must be inside the other's declared range
4. Dealbreakers: every question one side marked as a dealbreaker (or that
   a conditional hard filter promotes to one) must be satisfied by the peer

All checks are symmetric, so check_hard_filters(a, b).passed always equals
check_hard_filters(b, a).passed.
"""

import logging
from typing import Any, FrozenSet, List, Optional

from ..configs.settings import MatchingConfig
from ..questions.catalog import (
    SUBSTANCE_FREQUENCIES,
    QuestionKind,
    QuestionSpec,
    QuestionTable,
    question_sort_key,
)
from ..schema import (
    ANYONE,
    NO_SUBSTANCES,
    PREFER_NOT_TO_ANSWER,
    PREFER_NOT_TO_SAY,
    AgeAnswer,
    Candidate,
    HardFilterResult,
    LoveLanguageAnswer,
    PreferenceType,
    QuestionResponse,
    SubstanceUseAnswer,
)

logger = logging.getLogger(__name__)

GENDER_REASON = "Gender incompatibility"
CAMPUS_REASON = "Campus incompatibility"
AGE_REASON = "Age incompatibility"
DEALBREAKER_REASON = "Dealbreaker conflict"


def answer_values(answer: Any) -> FrozenSet[Any]:
    """View any answer as a set of values for membership and overlap checks."""
    if isinstance(answer, frozenset):
        return answer
    if isinstance(answer, SubstanceUseAnswer):
        return answer.substances
    if isinstance(answer, LoveLanguageAnswer):
        return answer.show
    if isinstance(answer, AgeAnswer):
        return frozenset({answer.age})
    return frozenset({answer})


def answer_position(spec: QuestionSpec, answer: Any) -> Optional[float]:
    """Position of an answer on an ordered scale, None when it has none."""
    if isinstance(answer, SubstanceUseAnswer):
        if answer.uses_nothing:
            return -1
        if answer.frequency in SUBSTANCE_FREQUENCIES:
            return SUBSTANCE_FREQUENCIES.index(answer.frequency)
        return None
    if isinstance(answer, AgeAnswer):
        return answer.age
    if isinstance(answer, (frozenset, LoveLanguageAnswer)):
        return None
    return spec.position(answer)


def accepts_substances(answer: SubstanceUseAnswer, acceptable: FrozenSet[str]) -> bool:
    """True when every substance the peer uses is acceptable; abstaining counts as "none"."""
    used = frozenset({NO_SUBSTANCES}) if answer.uses_nothing else answer.substances
    return used <= acceptable


def _within(value: Any, bounds) -> bool:
    if isinstance(value, AgeAnswer):
        value = value.age
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    low, high = bounds
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def is_compatible_with_preference(
    spec: QuestionSpec,
    own: QuestionResponse,
    peer: Optional[QuestionResponse],
) -> bool:
    """
    Check whether the peer's answer satisfies `own` preference.

    A missing or "prefer not to answer" peer answer never satisfies a
    preference. Cases the preference cannot decide are compatible.

    Args:
        spec: Question spec
        own: The response carrying the preference
        peer: The other side's response, None when unanswered

    Returns:
        True if compatible
    """
    preference = own.preference
    if preference.is_wildcard:
        return True
    if peer is None or not peer.is_answered or peer.answer == PREFER_NOT_TO_ANSWER:
        return False

    mine, theirs = own.answer, peer.answer
    kind = preference.type

    if kind is PreferenceType.SPECIFIC_VALUES:
        if preference.value_range is not None:
            return _within(theirs, preference.value_range)
        if isinstance(theirs, SubstanceUseAnswer):
            return accepts_substances(theirs, preference.values)
        return bool(answer_values(theirs) & preference.values)

    if kind is PreferenceType.SAME:
        return answer_values(mine) == answer_values(theirs)

    own_position = answer_position(spec, mine)
    peer_position = answer_position(spec, theirs)
    on_scale = own_position is not None and peer_position is not None

    if kind is PreferenceType.SIMILAR:
        if on_scale:
            return abs(own_position - peer_position) <= 1
        if isinstance(mine, frozenset) or isinstance(theirs, frozenset):
            return bool(answer_values(mine) & answer_values(theirs))
        return answer_values(mine) == answer_values(theirs)

    if kind is PreferenceType.DIFFERENT:
        if on_scale:
            return abs(own_position - peer_position) >= 2
        return answer_values(mine) != answer_values(theirs)

    if kind is PreferenceType.MORE:
        return peer_position >= own_position if on_scale else True

    if kind is PreferenceType.LESS:
        return peer_position <= own_position if on_scale else True

    if kind is PreferenceType.COMPLEMENT and spec.complement_pairs:
        return spec.is_complement(mine, theirs)

    return True


def acts_as_dealbreaker(question_id: str, response: QuestionResponse, config: MatchingConfig) -> bool:
    """Explicit dealbreakers, plus responses a conditional hard filter promotes."""
    if response.preference.is_wildcard:
        return False
    if response.is_dealbreaker:
        return True
    levels = config.conditional_hard_filters.get(question_id, ())
    return response.importance.value in levels


def accepts_gender(seeker: Candidate, other: Candidate) -> bool:
    """Whether `seeker` is open to `other`'s gender."""
    wanted = seeker.interested_in_genders
    if ANYONE in wanted:
        return True
    if other.gender is None or other.gender == PREFER_NOT_TO_SAY:
        return False
    return other.gender in wanted


def gender_compatible(a: Candidate, b: Candidate) -> bool:
    return accepts_gender(a, b) and accepts_gender(b, a)


def campus_compatible(a: Candidate, b: Candidate) -> bool:
    if a.campus is None or b.campus is None:
        return True
    if a.campus.lower() == b.campus.lower():
        return True
    return a.ok_matching_different_campus and b.ok_matching_different_campus


def age_compatible(a: Candidate, b: Candidate) -> bool:
    a_age, b_age = a.age, b.age
    if a_age is not None and not a_age.accepts(b_age.age if b_age else None):
        return False
    if b_age is not None and not b_age.accepts(a_age.age if a_age else None):
        return False
    return True


def failed_dealbreakers(
    a: Candidate, b: Candidate, table: QuestionTable, config: MatchingConfig
) -> List[str]:
    """
    Collect every question on which a dealbreaker of either side fails.

    Returns:
        Failing question ids in natural order
    """
    skip = set(table.hard_filter_ids)
    question_ids = sorted(
        (set(a.responses) | set(b.responses)) - skip, key=question_sort_key
    )
    failed = []
    for question_id in question_ids:
        spec = table.specs.get(question_id)
        if spec is None or spec.kind is QuestionKind.FREE_TEXT:
            continue
        a_response = a.response(question_id)
        b_response = b.response(question_id)
        for own, peer in ((a_response, b_response), (b_response, a_response)):
            if own is None or not own.is_answered:
                continue
            if acts_as_dealbreaker(question_id, own, config) and not is_compatible_with_preference(
                spec, own, peer
            ):
                failed.append(question_id)
                break
    return failed


def check_hard_filters(
    a: Candidate, b: Candidate, table: QuestionTable, config: MatchingConfig
) -> HardFilterResult:
    """
    Run every hard filter for an unordered pair.

    Args:
        a: First candidate
        b: Second candidate
        table: Resolved question table
        config: Matching configuration

    Returns:
        HardFilterResult with the first failing category as reason
    """
    if not gender_compatible(a, b):
        return HardFilterResult(passed=False, reason=GENDER_REASON)
    if not campus_compatible(a, b):
        return HardFilterResult(passed=False, reason=CAMPUS_REASON)
    if not age_compatible(a, b):
        return HardFilterResult(passed=False, reason=AGE_REASON, failed_questions=("q4",))

    failed = failed_dealbreakers(a, b, table, config)
    if failed:
        logger.debug(f"Pair ({a.id}, {b.id}) failed dealbreakers: {failed}")
        return HardFilterResult(
            passed=False, reason=DEALBREAKER_REASON, failed_questions=tuple(failed)
        )
    return HardFilterResult(passed=True)
