"""
Response normalizer.

Turns stored questionnaire responses into the typed Candidate model.
Responses in the store come from several questionnaire versions, so the
same question can arrive in more than one shape:

- Gender tokens drift between singular/plural and hyphen/underscore
  ("man" / "men", "non-binary" / "non_binary")
- Preferences arrive as strings, lists, or dictionaries
- Importance arrives as a level name, a number, or the legacy "dealbreaker"
- Age arrives in three encodings:
    flat:     {"answer": 23, "preference": {"min": 20, "max": 26}}
    nested:   {"answer": {"age": 23, "range": {"min": 20, "max": 26}}}
    combined: {"answer": {"userAge": 23, "minAge": 20, "maxAge": 26}}

Each decoder raises DataShapeError when it does not recognise a shape. A
question that no decoder understands is treated as unanswered and logged;
it never aborts the candidate.
"""

import logging
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from ..configs.settings import MatchingConfig, MAX_IMPORTANCE_WEIGHT
from ..errors import DataShapeError
from ..questions.catalog import AnswerShape, QuestionSpec, QuestionTable, question_sort_key
from ..schema import (
    ANYONE,
    NO_SUBSTANCES,
    PREFER_NOT_TO_ANSWER,
    PREFER_NOT_TO_SAY,
    AgeAnswer,
    Candidate,
    ImportanceLevel,
    LoveLanguageAnswer,
    PreferenceSpec,
    PreferenceType,
    QuestionResponse,
    SubstanceUseAnswer,
)

logger = logging.getLogger(__name__)

GENDER_ALIASES = {
    "man": "men",
    "men": "men",
    "male": "men",
    "woman": "women",
    "women": "women",
    "female": "women",
    "non-binary": "non_binary",
    "nonbinary": "non_binary",
    "enby": "non_binary",
    "prefer-not-to-say": PREFER_NOT_TO_SAY,
    "anyone": ANYONE,
    "everyone": ANYONE,
    "any": ANYONE,
}

WILDCARD_PREFERENCES = {"doesntmatter", "doesnt-matter", "no-preference", "any", "anything"}

IMPORTANCE_ALIASES = {
    "not": ImportanceLevel.NOT_IMPORTANT,
    "not-important": ImportanceLevel.NOT_IMPORTANT,
    "somewhat": ImportanceLevel.SOMEWHAT_IMPORTANT,
    "somewhat-important": ImportanceLevel.SOMEWHAT_IMPORTANT,
    "important": ImportanceLevel.IMPORTANT,
    "very": ImportanceLevel.VERY_IMPORTANT,
    "very-important": ImportanceLevel.VERY_IMPORTANT,
}

DEALBREAKER_KEYS = ("isDealbreaker", "is_dealbreaker", "dealbreaker")
RANGE_KEYS = (("min", "max"), ("minAge", "maxAge"), ("min_age", "max_age"))


def normalize_token(value: Any) -> str:
    """Lower-case option token with hyphens as separators."""
    return str(value).strip().lower().replace("_", "-").replace(" ", "-")


def normalize_gender(value: Any) -> str:
    token = normalize_token(value)
    return GENDER_ALIASES.get(token, token.replace("-", "_"))


def _first(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return default


def _as_number(question_id: str, value: Any) -> float:
    if isinstance(value, bool):
        raise DataShapeError(question_id, f"expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        return int(value) if float(value).is_integer() else float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise DataShapeError(question_id, f"expected a number, got {value!r}")
        return int(number) if number.is_integer() else number
    raise DataShapeError(question_id, f"expected a number, got {type(value).__name__}")


def _optional_bound(question_id: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(_as_number(question_id, value))


def _extract_range(question_id: str, raw: Any) -> Optional[Tuple[Optional[int], Optional[int]]]:
    """Read (min, max) from any of the known key spellings, None if absent."""
    if not isinstance(raw, Mapping):
        return None
    for low_key, high_key in RANGE_KEYS:
        if low_key in raw or high_key in raw:
            return (
                _optional_bound(question_id, raw.get(low_key)),
                _optional_bound(question_id, raw.get(high_key)),
            )
    return None


def _decode_age_combined(question_id: str, answer: Any, preference: Any) -> AgeAnswer:
    if not isinstance(answer, Mapping) or "userAge" not in answer:
        raise DataShapeError(question_id, "not a combined age encoding")
    return AgeAnswer(
        age=_optional_bound(question_id, answer.get("userAge")),
        min_age=_optional_bound(question_id, answer.get("minAge")),
        max_age=_optional_bound(question_id, answer.get("maxAge")),
    )


def _decode_age_nested(question_id: str, answer: Any, preference: Any) -> AgeAnswer:
    if not isinstance(answer, Mapping) or "age" not in answer:
        raise DataShapeError(question_id, "not a nested age encoding")
    bounds = _extract_range(question_id, answer.get("range"))
    if bounds is None:
        bounds = _extract_range(question_id, preference) or (None, None)
    return AgeAnswer(_optional_bound(question_id, answer["age"]), *bounds)


def _decode_age_flat(question_id: str, answer: Any, preference: Any) -> AgeAnswer:
    if isinstance(answer, Mapping):
        raise DataShapeError(question_id, "not a flat age encoding")
    bounds = _extract_range(question_id, preference) or (None, None)
    return AgeAnswer(int(_as_number(question_id, answer)), *bounds)


AGE_DECODERS: Tuple[Callable[[str, Any, Any], AgeAnswer], ...] = (
    _decode_age_combined,
    _decode_age_nested,
    _decode_age_flat,
)


def decode_age(question_id: str, answer: Any, preference: Any) -> AgeAnswer:
    """
    Decode an age response, trying each legacy encoding in turn.

    Raises:
        DataShapeError: If no encoding matches
    """
    for decoder in AGE_DECODERS:
        try:
            return decoder(question_id, answer, preference)
        except DataShapeError:
            continue
    raise DataShapeError(question_id, f"unrecognised age encoding: {answer!r}")


class ResponseNormalizer:
    """
    Normalizer from stored candidate records to typed Candidates.

    Attributes:
        table: Resolved question table; questions outside it are dropped
        config: Matching configuration (importance scale and defaults)
        dropped_answers: Count of answers dropped for unrecognised shapes
    """

    def __init__(self, table: QuestionTable, config: MatchingConfig):
        self.table = table
        self.config = config
        self.dropped_answers = 0

    def normalize_pool(
        self, records: Iterable[Mapping[str, Any]]
    ) -> Tuple[List[Candidate], List[Tuple[str, str]]]:
        """
        Normalize a pool of stored candidate records.

        Args:
            records: Raw candidate dictionaries

        Returns:
            Tuple of (candidates, rejected) where rejected holds
            (candidate id, reason) pairs
        """
        candidates: List[Candidate] = []
        rejected: List[Tuple[str, str]] = []
        seen = set()

        for record in records:
            record_id = str(_first(record, "id", "userId", "user_id", default="<unknown>"))
            try:
                candidate = self.normalize_candidate(record)
            except DataShapeError as e:
                logger.warning(f"Rejected candidate {record_id}: {e}")
                rejected.append((record_id, str(e)))
                continue

            if candidate.id in seen:
                logger.warning(f"Rejected duplicate candidate id {candidate.id}")
                rejected.append((candidate.id, "duplicate candidate id"))
                continue

            answered = sum(1 for r in candidate.responses.values() if r.is_answered)
            if answered < self.config.min_answered_questions:
                reason = (
                    f"answered {answered} questions, "
                    f"{self.config.min_answered_questions} required"
                )
                logger.warning(f"Rejected candidate {candidate.id}: {reason}")
                rejected.append((candidate.id, reason))
                continue

            seen.add(candidate.id)
            candidates.append(candidate)

        logger.info(f"Normalized {len(candidates)} candidates, rejected {len(rejected)}")
        if self.dropped_answers:
            logger.info(f"Dropped {self.dropped_answers} answers with unrecognised shapes")
        return candidates, rejected

    def normalize_candidate(self, record: Mapping[str, Any]) -> Candidate:
        """
        Normalize one stored candidate record.

        Raises:
            DataShapeError: If the record lacks an id, gender or gender preference
        """
        candidate_id = _first(record, "id", "userId", "user_id")
        if candidate_id is None or str(candidate_id).strip() == "":
            raise DataShapeError("candidate", "missing id")
        candidate_id = str(candidate_id)

        raw_responses = _first(record, "responses", "answers", default={}) or {}
        if not isinstance(raw_responses, Mapping):
            raise DataShapeError("candidate", f"{candidate_id}: responses must be a mapping")

        responses: Dict[str, QuestionResponse] = {}
        for question_id in sorted(raw_responses, key=question_sort_key):
            spec = self.table.specs.get(question_id)
            if spec is None:
                logger.debug(f"{candidate_id}: ignoring unknown question {question_id}")
                continue
            try:
                response = self.normalize_response(spec, raw_responses[question_id])
            except DataShapeError as e:
                self.dropped_answers += 1
                logger.warning(f"{candidate_id}: treating {question_id} as unanswered ({e})")
                continue
            if response is not None:
                responses[question_id] = response

        gender = _first(record, "gender")
        if gender is None and "q1" in responses:
            gender = responses["q1"].answer
        if gender is None:
            raise DataShapeError("q1", f"{candidate_id}: missing gender")

        interested = _first(record, "interestedInGenders", "interested_in_genders")
        if interested is not None:
            interested = self._decode_gender_set("q2", interested)
        elif "q2" in responses:
            interested = responses["q2"].answer
        if not interested:
            raise DataShapeError("q2", f"{candidate_id}: missing gender preference")

        campus = _first(record, "campus")
        return Candidate(
            id=candidate_id,
            gender=normalize_gender(gender),
            interested_in_genders=frozenset(interested),
            campus=str(campus).strip() if campus not in (None, "") else None,
            ok_matching_different_campus=bool(
                _first(
                    record,
                    "okMatchingDifferentCampus",
                    "ok_matching_different_campus",
                    default=True,
                )
            ),
            responses=responses,
        )

    def normalize_response(self, spec: QuestionSpec, raw: Any) -> Optional[QuestionResponse]:
        """
        Normalize one stored response.

        A bare value (not a dictionary) is read as the answer with default
        preference and importance.

        Returns:
            QuestionResponse, or None when the stored response carries no answer

        Raises:
            DataShapeError: If the answer, preference or importance is malformed
        """
        if isinstance(raw, Mapping) and ("answer" in raw or "value" in raw):
            answer_raw = _first(raw, "answer", "value")
            preference_raw = _first(raw, "preference", "preferences")
            importance_raw = raw.get("importance")
            flagged = any(bool(raw.get(key)) for key in DEALBREAKER_KEYS)
        else:
            answer_raw, preference_raw, importance_raw, flagged = raw, None, None, False

        if answer_raw is None:
            return None

        importance, legacy_dealbreaker = self.decode_importance(spec.id, importance_raw)

        if spec.shape is AnswerShape.AGE:
            answer = decode_age(spec.id, answer_raw, preference_raw)
            preference = PreferenceSpec.within(answer.min_age, answer.max_age)
        else:
            answer = self.decode_answer(spec, answer_raw)
            preference = self.decode_preference(spec, preference_raw)

        return QuestionResponse(
            answer=answer,
            preference=preference,
            importance=importance,
            is_dealbreaker=flagged or legacy_dealbreaker,
        )

    def decode_answer(self, spec: QuestionSpec, raw: Any) -> Any:
        shape = spec.shape
        if isinstance(raw, str) and normalize_token(raw) in (PREFER_NOT_TO_ANSWER, "prefer-not-to-say"):
            if shape not in (AnswerShape.GENDER, AnswerShape.GENDER_SET):
                return PREFER_NOT_TO_ANSWER

        if shape is AnswerShape.GENDER:
            return normalize_gender(raw)
        if shape is AnswerShape.GENDER_SET:
            return self._decode_gender_set(spec.id, raw)
        if shape is AnswerShape.NUMBER:
            if isinstance(raw, str) and spec.wildcard and normalize_token(raw) == spec.wildcard:
                return spec.wildcard
            return _as_number(spec.id, raw)
        if shape is AnswerShape.TOKEN:
            if isinstance(raw, (list, tuple)) and len(raw) == 1:
                raw = raw[0]
            if isinstance(raw, (Mapping, list, tuple, set)):
                raise DataShapeError(spec.id, f"expected a single option, got {raw!r}")
            return normalize_token(raw)
        if shape is AnswerShape.TOKEN_SET:
            return self._decode_token_set(spec.id, raw)
        if shape is AnswerShape.LOVE_LANGUAGES:
            if not isinstance(raw, Mapping):
                raise DataShapeError(spec.id, "love languages need show and receive lists")
            return LoveLanguageAnswer(
                show=self._decode_token_set(spec.id, _first(raw, "show", "give", default=[])),
                receive=self._decode_token_set(spec.id, _first(raw, "receive", "get", default=[])),
            )
        if shape is AnswerShape.SUBSTANCE_USE:
            return self._decode_substance_use(spec.id, raw)
        if shape is AnswerShape.TEXT:
            text = str(raw).strip()
            return text or None
        raise DataShapeError(spec.id, f"no decoder for answer shape {shape.value}")

    def decode_preference(self, spec: QuestionSpec, raw: Any) -> PreferenceSpec:
        if raw is None:
            return PreferenceSpec()
        if isinstance(raw, str):
            token = normalize_token(raw)
            if token in WILDCARD_PREFERENCES:
                return PreferenceSpec.doesnt_matter()
            try:
                return PreferenceSpec(PreferenceType(token.replace("-", "_")))
            except ValueError:
                pass
            if token in spec.options:
                return PreferenceSpec.specific([token])
            raise DataShapeError(spec.id, f"unknown preference {raw!r}")
        if isinstance(raw, (list, tuple, set, frozenset)):
            return PreferenceSpec.specific(self._decode_values(spec, raw))
        if isinstance(raw, Mapping):
            if _first(raw, "doesntMatter", "doesnt_matter", default=False):
                return PreferenceSpec.doesnt_matter()
            bounds = _extract_range(spec.id, raw)
            if bounds is not None:
                return PreferenceSpec.within(*bounds)
            if "type" in raw:
                preference = self.decode_preference(spec, raw["type"])
                values = _first(raw, "values", "value")
                if values is None:
                    return preference
                if not isinstance(values, (list, tuple, set, frozenset)):
                    values = [values]
                return PreferenceSpec(
                    preference.type, values=frozenset(self._decode_values(spec, values))
                )
        raise DataShapeError(spec.id, f"unrecognised preference {raw!r}")

    def decode_importance(self, question_id: str, raw: Any) -> Tuple[ImportanceLevel, bool]:
        """
        Decode importance into a level and a legacy dealbreaker flag.

        Numbers are clamped into [0, 2] and snapped to the nearest
        configured level weight.
        """
        if raw is None:
            return ImportanceLevel(self.config.default_importance), False
        if isinstance(raw, str):
            token = normalize_token(raw)
            if token == "dealbreaker":
                return ImportanceLevel.VERY_IMPORTANT, True
            if token in IMPORTANCE_ALIASES:
                return IMPORTANCE_ALIASES[token], False
            try:
                raw = float(token)
            except ValueError:
                raise DataShapeError(question_id, f"unknown importance {raw!r}")
        number = min(max(_as_number(question_id, raw), 0.0), MAX_IMPORTANCE_WEIGHT)
        level = min(
            ImportanceLevel,
            key=lambda lvl: abs(self.config.importance_weights[lvl.value] - number),
        )
        return level, False

    def _decode_values(self, spec: QuestionSpec, values: Iterable[Any]) -> List[Any]:
        if spec.shape is AnswerShape.NUMBER:
            return [_as_number(spec.id, v) for v in values]
        return [normalize_token(v) for v in values]

    def _decode_token_set(self, question_id: str, raw: Any) -> FrozenSet[str]:
        if raw is None:
            return frozenset()
        if isinstance(raw, str):
            return frozenset({normalize_token(raw)})
        if isinstance(raw, (list, tuple, set, frozenset)):
            return frozenset(normalize_token(v) for v in raw if v is not None)
        raise DataShapeError(question_id, f"expected a list of options, got {raw!r}")

    def _decode_gender_set(self, question_id: str, raw: Any) -> FrozenSet[str]:
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, (list, tuple, set, frozenset)):
            raise DataShapeError(question_id, f"expected a list of genders, got {raw!r}")
        return frozenset(normalize_gender(v) for v in raw)

    def _decode_substance_use(self, question_id: str, raw: Any) -> SubstanceUseAnswer:
        if isinstance(raw, Mapping):
            substances = self._decode_token_set(
                question_id, _first(raw, "substances", "substance", "answer", default=[])
            )
            frequency = raw.get("frequency")
        else:
            substances = self._decode_token_set(question_id, raw)
            frequency = None

        if NO_SUBSTANCES in substances:
            substances = frozenset({NO_SUBSTANCES})
            frequency = None
        elif frequency is not None:
            frequency = normalize_token(frequency)
        return SubstanceUseAnswer(substances=substances, frequency=frequency)
