"""
Questionnaire catalog.

Each question id maps to a QuestionSpec: the kind of similarity it is
scored with, its ordered options, and any wildcard or complement data.
The catalog is resolved against the configured section membership once,
when a run starts; after that, scoring looks kinds up in the resolved
table instead of branching on question ids.

Kinds:
- hard_filter: used only by the hard filter stage (gender, age)
- categorical / ordinal / multi_select / single_vs_multi
- substance_use: compound (substances, frequency) answer
- directional: Likert scale with more/less preferences
- different: answers meant to differ or complement each other
- love_languages / conflict_resolution / sleep_schedule: dedicated special cases
- free_text: similarity supplied by the text-similarity collaborator
"""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from ..errors import ConfigurationError
from ..schema import Section


class QuestionKind(Enum):
    HARD_FILTER = "hard_filter"
    CATEGORICAL = "categorical"
    ORDINAL = "ordinal"
    MULTI_SELECT = "multi_select"
    SINGLE_VS_MULTI = "single_vs_multi"
    SUBSTANCE_USE = "substance_use"
    DIRECTIONAL = "directional"
    DIFFERENT = "different"
    LOVE_LANGUAGES = "love_languages"
    CONFLICT_RESOLUTION = "conflict_resolution"
    SLEEP_SCHEDULE = "sleep_schedule"
    FREE_TEXT = "free_text"


class AnswerShape(Enum):
    """How a stored answer is decoded."""
    TOKEN = "token"
    NUMBER = "number"
    TOKEN_SET = "token_set"
    GENDER = "gender"
    GENDER_SET = "gender_set"
    AGE = "age"
    LOVE_LANGUAGES = "love_languages"
    SUBSTANCE_USE = "substance_use"
    TEXT = "text"


@dataclass(frozen=True)
class QuestionSpec:
    """
    Static description of one question.

    Attributes:
        id: Question id (e.g. "q10")
        label: Short human-readable name
        kind: Similarity kind
        shape: Answer encoding
        options: Ordered options; order is meaningful for scales
        wildcard: Answer token meaning "anything works for me"
        positive_direction: "higher" or "lower", which end "more" points to
        complement_pairs: Unordered answer pairs that complement each other
        component_weights: Weights of a compound answer's parts, e.g. the
            (show, receive) split of love languages
    """
    id: str
    label: str
    kind: QuestionKind
    shape: AnswerShape
    options: Tuple[Any, ...] = ()
    wildcard: Optional[str] = None
    positive_direction: str = "higher"
    complement_pairs: FrozenSet[FrozenSet[str]] = frozenset()
    component_weights: Tuple[float, ...] = ()

    @property
    def is_scored(self) -> bool:
        return self.kind is not QuestionKind.HARD_FILTER

    @property
    def max_distance(self) -> int:
        return max(len(self.options) - 1, 1)

    def position(self, value: Any) -> Optional[int]:
        """Index of `value` on the question's scale, oriented by positive_direction."""
        try:
            index = self.options.index(value)
        except ValueError:
            return None
        if self.positive_direction == "lower":
            return len(self.options) - 1 - index
        return index

    def is_complement(self, a: Any, b: Any) -> bool:
        return frozenset((a, b)) in self.complement_pairs


SCALE_1_TO_5 = (1, 2, 3, 4, 5)
SUBSTANCE_FREQUENCIES = ("rarely", "occasionally", "regularly", "frequently")
LOVE_LANGUAGES = (
    "words-of-affirmation",
    "quality-time",
    "acts-of-service",
    "physical-touch",
    "receiving-gifts",
)
SLEEP_SCHEDULES = ("early-bird", "night-owl", "irregular")
CONFLICT_STYLES = (
    "compromise-focused",
    "solution-focused",
    "emotion-focused",
    "analysis-focused",
    "space-first",
    "direct-address",
)


def _q(id, label, kind, shape, options=(), **kwargs) -> QuestionSpec:
    return QuestionSpec(id=id, label=label, kind=kind, shape=shape, options=tuple(options), **kwargs)


def _pairs(*pairs) -> FrozenSet[FrozenSet[str]]:
    return frozenset(frozenset(p) for p in pairs)


K = QuestionKind
S = AnswerShape

DEFAULT_QUESTIONS = (
    _q("q1", "gender", K.HARD_FILTER, S.GENDER),
    _q("q2", "gender preference", K.HARD_FILTER, S.GENDER_SET),
    _q("q3", "sexual orientation", K.CATEGORICAL, S.TOKEN, (
        "straight", "gay", "lesbian", "bisexual", "pansexual", "asexual", "queer", "questioning",
    )),
    _q("q4", "age", K.HARD_FILTER, S.AGE),
    _q("q5", "cultural background", K.MULTI_SELECT, S.TOKEN_SET, (
        "east-asian", "south-asian", "southeast-asian", "black", "hispanic-latino",
        "middle-eastern", "white", "indigenous", "pacific-islander", "mixed", "other",
    )),
    _q("q6", "religion", K.MULTI_SELECT, S.TOKEN_SET, (
        "christian", "catholic", "muslim", "jewish", "hindu", "buddhist", "sikh",
        "spiritual", "agnostic", "atheist", "other",
    )),
    _q("q7", "political views", K.ORDINAL, S.NUMBER, SCALE_1_TO_5),
    _q("q8", "alcohol", K.ORDINAL, S.TOKEN, ("never", "rarely", "socially", "frequently")),
    _q("q9", "substance use", K.SUBSTANCE_USE, S.SUBSTANCE_USE, (
        "cannabis", "cigarettes", "vaping", "other-recreational", "none",
    )),
    _q("q10", "exercise", K.DIRECTIONAL, S.NUMBER, SCALE_1_TO_5),
    _q("q11", "relationship structure", K.CATEGORICAL, S.TOKEN, (
        "monogamous", "open", "polyamorous", "exploring",
    )),
    _q("q12", "intimacy expectations", K.ORDINAL, S.TOKEN, (
        "wait-for-marriage", "wait-for-commitment", "after-connection", "comfortable-early",
    )),
    _q("q13", "looking for", K.MULTI_SELECT, S.TOKEN_SET, (
        "long-term", "short-term", "casual", "friendship", "figuring-it-out",
    )),
    _q("q14", "field of study", K.SINGLE_VS_MULTI, S.TOKEN, (
        "arts", "science", "engineering", "business", "health", "law", "education", "other",
    )),
    _q("q15", "living situation", K.SINGLE_VS_MULTI, S.TOKEN, (
        "on-campus", "off-campus-roommates", "off-campus-alone", "with-family",
    )),
    _q("q16", "ambition", K.DIRECTIONAL, S.NUMBER, SCALE_1_TO_5),
    _q("q17", "spending habits", K.ORDINAL, S.NUMBER, SCALE_1_TO_5),
    _q("q18", "availability", K.DIRECTIONAL, S.NUMBER, SCALE_1_TO_5),
    _q("q19", "pets", K.CATEGORICAL, S.TOKEN, ("love-pets", "have-pets", "allergic", "no-pets")),
    _q("q20", "relationship experience", K.CATEGORICAL, S.TOKEN, ("none", "some", "experienced")),
    _q("q21", "love languages", K.LOVE_LANGUAGES, S.LOVE_LANGUAGES, LOVE_LANGUAGES,
       component_weights=(0.6, 0.4)),
    _q("q22", "social energy", K.DIRECTIONAL, S.NUMBER, SCALE_1_TO_5),
    _q("q23", "recharging", K.ORDINAL, S.TOKEN, (
        "lots-alone-time", "some-alone-time", "balanced", "some-company", "always-want-company",
    )),
    _q("q24", "nightlife", K.ORDINAL, S.NUMBER, SCALE_1_TO_5),
    _q("q25", "conflict resolution", K.CONFLICT_RESOLUTION, S.TOKEN_SET, CONFLICT_STYLES),
    _q("q26", "texting frequency", K.ORDINAL, S.TOKEN, (
        "minimal", "moderate-checkins", "frequent-throughout-day", "constant",
    ), wildcard="whatever-natural"),
    _q("q27", "public affection", K.ORDINAL, S.NUMBER, SCALE_1_TO_5),
    _q("q28", "planning style", K.DIRECTIONAL, S.NUMBER, SCALE_1_TO_5),
    _q("q29", "sleep schedule", K.SLEEP_SCHEDULE, S.TOKEN, SLEEP_SCHEDULES, wildcard="flexible"),
    _q("q30", "cleanliness", K.ORDINAL, S.NUMBER, SCALE_1_TO_5),
    _q("q31", "novelty", K.DIFFERENT, S.TOKEN, ("routine", "balanced", "spontaneous"),
       complement_pairs=_pairs(("routine", "spontaneous"))),
    _q("q32", "what counts as cheating", K.MULTI_SELECT, S.TOKEN_SET, (
        "physical-intimacy", "emotional-affair", "flirting", "dating-apps", "secret-texting",
    )),
    _q("q33", "socialising together", K.ORDINAL, S.NUMBER, SCALE_1_TO_5),
    _q("q34", "favourite activities", K.DIFFERENT, S.TOKEN, (
        "outdoor-adventure", "creative-arts", "intellectual", "social-events", "relaxing-home",
    ), complement_pairs=_pairs(
        ("outdoor-adventure", "relaxing-home"),
        ("creative-arts", "intellectual"),
        ("social-events", "relaxing-home"),
    )),
    _q("q35", "directness", K.DIRECTIONAL, S.NUMBER, SCALE_1_TO_5),
    _q("q36", "handling stress", K.ORDINAL, S.TOKEN, (
        "withdraw", "talk-it-out-later", "talk-immediately",
    )),
    _q("q37", "core values", K.FREE_TEXT, S.TEXT),
)

DEFAULT_CATALOG: Dict[str, QuestionSpec] = {spec.id: spec for spec in DEFAULT_QUESTIONS}


def question_sort_key(question_id: str) -> Tuple[int, str]:
    """Natural ordering for question ids ("q9" < "q9a" < "q10")."""
    match = re.match(r"^[a-zA-Z]*(\d+)(.*)$", question_id)
    if match is None:
        return (10 ** 6, question_id)
    return (int(match.group(1)), match.group(2))


@dataclass(frozen=True)
class QuestionTable:
    """
    The catalog resolved against a section membership table.

    Attributes:
        specs: Question id -> spec, for every question the normalizer accepts
        sections: Scored question id -> section
        scored_ids: Scored question ids in natural order
    """
    specs: Mapping[str, QuestionSpec]
    sections: Mapping[str, Section] = field(default_factory=dict)
    scored_ids: Tuple[str, ...] = ()

    def spec(self, question_id: str) -> QuestionSpec:
        return self.specs[question_id]

    def section(self, question_id: str) -> Section:
        return self.sections[question_id]

    @property
    def hard_filter_ids(self) -> Tuple[str, ...]:
        return tuple(
            sorted(
                (q for q, spec in self.specs.items() if spec.kind is QuestionKind.HARD_FILTER),
                key=question_sort_key,
            )
        )


def resolve_question_table(config, catalog: Optional[Mapping[str, QuestionSpec]] = None) -> QuestionTable:
    """
    Resolve the catalog against the configured section membership.

    Love-language questions take their (show, receive) weights from the
    config.

    Args:
        config: MatchingConfig
        catalog: Question id -> spec (defaults to DEFAULT_CATALOG)

    Returns:
        QuestionTable

    Raises:
        ConfigurationError: If a member question is missing from the catalog
            or has no scoring kind
    """
    catalog = DEFAULT_CATALOG if catalog is None else catalog
    sections: Dict[str, Section] = {}

    for section_name, question_ids in config.section_membership.items():
        section = Section(section_name)
        for question_id in question_ids:
            spec = catalog.get(question_id)
            if spec is None:
                raise ConfigurationError(f"{question_id} in section {section_name} has no question type")
            if not spec.is_scored:
                raise ConfigurationError(
                    f"{question_id} is a hard-filter question and cannot be scored in {section_name}"
                )
            sections[question_id] = section

    love_weights = config.love_language_weights
    specs = {}
    for question_id, spec in catalog.items():
        if question_id not in sections and spec.is_scored:
            continue
        if spec.kind is QuestionKind.LOVE_LANGUAGES:
            spec = replace(spec, component_weights=(love_weights["show"], love_weights["receive"]))
        specs[question_id] = spec

    return QuestionTable(
        specs=specs,
        sections=sections,
        scored_ids=tuple(sorted(sections, key=question_sort_key)),
    )
