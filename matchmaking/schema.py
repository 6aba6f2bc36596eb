"""
Core data model for the matching engine.

Every entity here is created fresh for a run and never mutated; each
pipeline stage returns new values instead of updating the ones it was
given.

Structure:
- Candidate: one person in the pool, with their questionnaire responses
- QuestionResponse: answer + preference + importance (+ dealbreaker flag)
- PairScore: both directional scores and the symmetric mutual score
- MatchPair / UnmatchedRecord: the final output of global matching
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .evaluation.diagnostics import PipelineDiagnostics
    from .scoring.eligibility import EligibilityReport


ANYONE = "anyone"
PREFER_NOT_TO_SAY = "prefer_not_to_say"
PREFER_NOT_TO_ANSWER = "prefer-not-to-answer"
NO_SUBSTANCES = "none"


class PreferenceType(Enum):
    """What a respondent wants from a partner on one question."""
    SAME = "same"
    SIMILAR = "similar"
    DIFFERENT = "different"
    MORE = "more"
    LESS = "less"
    COMPLEMENT = "complement"
    SPECIFIC_VALUES = "specific_values"
    DOESNT_MATTER = "doesnt_matter"


class ImportanceLevel(Enum):
    """How much a respondent cares about one question."""
    NOT_IMPORTANT = "not_important"
    SOMEWHAT_IMPORTANT = "somewhat_important"
    IMPORTANT = "important"
    VERY_IMPORTANT = "very_important"


class Section(Enum):
    """Score sections. Every scored question belongs to exactly one."""
    LIFESTYLE = "lifestyle"
    PERSONALITY = "personality"


class UnmatchedReason(Enum):
    """Why a candidate ended the run without a partner."""
    NO_ELIGIBLE_PAIRS = "no_eligible_pairs"
    OUTCOMPETED = "outcompeted"
    ODD_PARITY = "odd_parity"


class WhyNot(Enum):
    """Why one specific partner was not the candidate's match."""
    FAILED_HARD_FILTER = "failed_hard_filter"
    FAILED_ELIGIBILITY = "failed_eligibility"
    OUTCOMPETED = "outcompeted"
    PARTNER_UNMATCHED = "partner_unmatched"


@dataclass(frozen=True)
class PreferenceSpec:
    """
    A respondent's preference on one question.

    Attributes:
        type: Kind of preference
        values: Acceptable values when type is SPECIFIC_VALUES
        value_range: Optional (min, max) bounds, None meaning unrestricted
    """
    type: PreferenceType = PreferenceType.SIMILAR
    values: FrozenSet[Any] = frozenset()
    value_range: Optional[Tuple[Optional[float], Optional[float]]] = None

    @property
    def is_wildcard(self) -> bool:
        return self.type is PreferenceType.DOESNT_MATTER

    @classmethod
    def doesnt_matter(cls) -> "PreferenceSpec":
        return cls(PreferenceType.DOESNT_MATTER)

    @classmethod
    def specific(cls, values) -> "PreferenceSpec":
        return cls(PreferenceType.SPECIFIC_VALUES, values=frozenset(values))

    @classmethod
    def within(cls, minimum: Optional[float], maximum: Optional[float]) -> "PreferenceSpec":
        return cls(PreferenceType.SPECIFIC_VALUES, value_range=(minimum, maximum))


@dataclass(frozen=True)
class LoveLanguageAnswer:
    """Love languages a respondent shows and wants to receive."""
    show: FrozenSet[str] = frozenset()
    receive: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class SubstanceUseAnswer:
    """Substances used and how often."""
    substances: FrozenSet[str] = frozenset()
    frequency: Optional[str] = None

    @property
    def uses_nothing(self) -> bool:
        return not self.substances or self.substances == frozenset({NO_SUBSTANCES})


@dataclass(frozen=True)
class AgeAnswer:
    """
    A respondent's age and the partner age range they accept.

    Either bound may be None, meaning no restriction on that side.
    """
    age: Optional[int] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None

    @property
    def has_bounds(self) -> bool:
        return self.min_age is not None or self.max_age is not None

    def accepts(self, other_age: Optional[int]) -> bool:
        """Check whether a partner of `other_age` is inside the declared range."""
        if not self.has_bounds:
            return True
        if other_age is None:
            return False
        if self.min_age is not None and other_age < self.min_age:
            return False
        if self.max_age is not None and other_age > self.max_age:
            return False
        return True


@dataclass(frozen=True)
class QuestionResponse:
    """
    One respondent's response to one question.

    Attributes:
        answer: str, number, frozenset of str, or a compound answer dataclass
        preference: What the respondent wants from a partner
        importance: How much the respondent cares
        is_dealbreaker: Whether an incompatible partner is excluded outright
    """
    answer: Any
    preference: PreferenceSpec = field(default_factory=PreferenceSpec)
    importance: ImportanceLevel = ImportanceLevel.SOMEWHAT_IMPORTANT
    is_dealbreaker: bool = False

    @property
    def is_answered(self) -> bool:
        return self.answer is not None


@dataclass(frozen=True)
class Candidate:
    """
    A person in the matching pool.

    Attributes:
        id: Unique, stable identifier
        gender: Normalized gender token (e.g. "women", "men", "non_binary")
        interested_in_genders: Normalized gender tokens, may contain "anyone"
        campus: Campus name, None when unknown
        ok_matching_different_campus: Willing to be matched across campuses
        responses: Question id -> response
    """
    id: str
    gender: Optional[str]
    interested_in_genders: FrozenSet[str] = frozenset()
    campus: Optional[str] = None
    ok_matching_different_campus: bool = True
    responses: Mapping[str, QuestionResponse] = field(default_factory=dict)

    def response(self, question_id: str) -> Optional[QuestionResponse]:
        return self.responses.get(question_id)

    @property
    def age(self) -> Optional[AgeAnswer]:
        response = self.responses.get("q4")
        if response is not None and isinstance(response.answer, AgeAnswer):
            return response.answer
        return None


@dataclass(frozen=True)
class HardFilterResult:
    """Outcome of the hard filter stage for one unordered pair."""
    passed: bool
    reason: Optional[str] = None
    failed_questions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class QuestionScore:
    """
    Per-question score for one direction of a pair.

    Attributes:
        question_id: Question id
        section: Section the question belongs to
        raw_similarity: Symmetric similarity in [0, 1]
        weight_self: Importance weight of the scoring side
        weight_peer: Importance weight of the scored side
        weighted_similarity: final_similarity times section_weight
        directional_multiplier: Multiplier from the scoring side's preference
        final_similarity: Directionally adjusted similarity clamped to [0, 1]
        section_weight: Weight used when averaging within the section
    """
    question_id: str
    section: Section
    raw_similarity: float
    weight_self: float
    weight_peer: float
    weighted_similarity: float
    directional_multiplier: float
    final_similarity: float
    section_weight: float


@dataclass(frozen=True)
class DirectionalBreakdown:
    """How well `to_id` satisfies `from_id`, scaled to [0, 100]."""
    from_id: str
    to_id: str
    total: float
    section_scores: Mapping[Section, float]
    question_scores: Mapping[str, QuestionScore]


@dataclass(frozen=True)
class QuestionGap:
    """Scores of one question from both sides of a pair."""
    question_id: str
    score_a: float
    score_b: float

    @property
    def average(self) -> float:
        return (self.score_a + self.score_b) / 2

    @property
    def difference(self) -> float:
        return abs(self.score_a - self.score_b)


@dataclass(frozen=True)
class PairScoreDiagnostics:
    mutuality_penalty: float
    question_count: int
    low_score_questions: Tuple[QuestionGap, ...] = ()
    asymmetric_preferences: Tuple[QuestionGap, ...] = ()


@dataclass(frozen=True)
class PairScore:
    """
    Both directional scores of an unordered pair and their mutual score.

    `score_a_to_b` is how well B satisfies A; `pair_score` is symmetric.
    """
    a_id: str
    b_id: str
    score_a_to_b: float
    score_b_to_a: float
    pair_score: float
    diagnostics: PairScoreDiagnostics

    def involves(self, user_id: str) -> bool:
        return user_id in (self.a_id, self.b_id)

    def partner_of(self, user_id: str) -> str:
        if user_id == self.a_id:
            return self.b_id
        if user_id == self.b_id:
            return self.a_id
        raise KeyError(f"{user_id} is not part of pair ({self.a_id}, {self.b_id})")


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of the three eligibility gates for one pair."""
    eligible: bool
    passed_absolute: bool
    passed_relative_a: bool
    passed_relative_b: bool
    t_min: float
    threshold_a: float
    threshold_b: float
    failure_reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EligiblePair:
    """A pair score that passed every eligibility gate."""
    pair: PairScore
    eligibility: EligibilityResult

    @property
    def a_id(self) -> str:
        return self.pair.a_id

    @property
    def b_id(self) -> str:
        return self.pair.b_id

    @property
    def pair_score(self) -> float:
        return self.pair.pair_score


@dataclass(frozen=True)
class MatchPair:
    """A final pairing. `a_id` sorts before `b_id`."""
    a_id: str
    b_id: str
    pair_score: PairScore

    @property
    def score(self) -> float:
        return self.pair_score.pair_score


@dataclass(frozen=True)
class CandidatePartner:
    """One of the best partners an unmatched candidate could have had."""
    partner_id: str
    why_not: WhyNot
    pair_score: Optional[float] = None
    detail: Optional[str] = None


@dataclass(frozen=True)
class UnmatchedRecord:
    """An unmatched candidate with exactly one reason category."""
    user_id: str
    reason: UnmatchedReason
    message: str
    best_possible_score: Optional[float] = None
    best_possible_match_id: Optional[str] = None
    top_candidates: Tuple[CandidatePartner, ...] = ()


@dataclass(frozen=True)
class FilteredPair:
    """A pair removed by the hard filter stage."""
    a_id: str
    b_id: str
    result: HardFilterResult


@dataclass(frozen=True)
class MatchingResult:
    """Everything a matching run produces."""
    matches: Tuple[MatchPair, ...]
    unmatched: Tuple[UnmatchedRecord, ...]
    eligible_pairs: Tuple[EligiblePair, ...]
    pair_scores: Tuple[PairScore, ...]
    filtered_pairs: Tuple[FilteredPair, ...]
    eligibility: "EligibilityReport"
    diagnostics: "PipelineDiagnostics"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "matches": to_serializable(self.matches),
            "unmatched": to_serializable(self.unmatched),
            "eligible_pairs": to_serializable(self.eligible_pairs),
            "diagnostics": self.diagnostics.to_dict(),
        }


def to_serializable(value: Any) -> Any:
    """
    Recursively convert dataclasses, enums and sets to JSON-compatible values.

    Sets are emitted as sorted lists so the output is stable across runs.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {
            (k.value if isinstance(k, Enum) else k): to_serializable(v)
            for k, v in value.items()
        }
    if isinstance(value, (set, frozenset)):
        return sorted(to_serializable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_serializable(v) for v in value]
    return value
