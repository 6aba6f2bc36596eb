"""Tests for response normalization."""

import pytest

from matchmaking.errors import DataShapeError
from matchmaking.preprocessing import decode_age, normalize_gender, normalize_token
from matchmaking.schema import (
    PREFER_NOT_TO_ANSWER,
    AgeAnswer,
    ImportanceLevel,
    PreferenceSpec,
    PreferenceType,
    SubstanceUseAnswer,
)


def _record(**overrides):
    record = {
        "id": "u1",
        "gender": "woman",
        "interestedInGenders": ["men"],
        "campus": "North",
        "responses": {},
    }
    record.update(overrides)
    return record


class TestTokens:
    """Token and gender normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("man", "men"),
        ("Men", "men"),
        ("Woman", "women"),
        ("female", "women"),
        ("non-binary", "non_binary"),
        ("Non Binary", "non_binary"),
        ("prefer_not_to_say", "prefer_not_to_say"),
        ("Everyone", "anyone"),
    ])
    def test_gender_tokens(self, raw, expected):
        assert normalize_gender(raw) == expected

    def test_option_tokens(self):
        assert normalize_token("Early_Bird") == "early-bird"
        assert normalize_token(" long term ") == "long-term"


class TestAgeEncodings:
    """All three stored age encodings decode to the same answer."""

    def test_flat(self):
        assert decode_age("q4", 23, {"min": 20, "max": 26}) == AgeAnswer(23, 20, 26)

    def test_nested(self):
        answer = {"age": 23, "range": {"min": 20, "max": None}}
        assert decode_age("q4", answer, None) == AgeAnswer(23, 20, None)

    def test_combined(self):
        answer = {"userAge": "23", "minAge": 21, "maxAge": 30}
        assert decode_age("q4", answer, None) == AgeAnswer(23, 21, 30)

    def test_flat_without_range(self):
        assert decode_age("q4", 19, None) == AgeAnswer(19, None, None)

    def test_unrecognised(self):
        with pytest.raises(DataShapeError):
            decode_age("q4", {"years": 23}, None)


class TestResponseNormalization:
    """Single responses in every stored shape."""

    def test_bare_value_is_answer(self, normalizer, table):
        response = normalizer.normalize_response(table.spec("q7"), 3)
        assert response.answer == 3
        assert response.preference == PreferenceSpec()
        assert response.importance is ImportanceLevel.SOMEWHAT_IMPORTANT

    def test_string_number_answer(self, normalizer, table):
        response = normalizer.normalize_response(table.spec("q10"), {"answer": "4", "preference": "more"})
        assert response.answer == 4
        assert response.preference.type is PreferenceType.MORE

    def test_preference_shapes(self, normalizer, table):
        spec = table.spec("q14")
        assert normalizer.decode_preference(spec, "doesntMatter").is_wildcard
        assert normalizer.decode_preference(spec, {"doesntMatter": True}).is_wildcard
        assert normalizer.decode_preference(spec, ["Science", "engineering"]) == PreferenceSpec.specific(
            {"science", "engineering"}
        )
        assert normalizer.decode_preference(spec, "arts") == PreferenceSpec.specific({"arts"})
        assert normalizer.decode_preference(table.spec("q10"), {"min": 3, "max": 5}) == PreferenceSpec.within(3, 5)

    def test_unknown_preference_rejected(self, normalizer, table):
        with pytest.raises(DataShapeError):
            normalizer.decode_preference(table.spec("q14"), "astrology")

    @pytest.mark.parametrize("raw,level,dealbreaker", [
        ("important", ImportanceLevel.IMPORTANT, False),
        ("very_important", ImportanceLevel.VERY_IMPORTANT, False),
        ("dealbreaker", ImportanceLevel.VERY_IMPORTANT, True),
        (3, ImportanceLevel.VERY_IMPORTANT, False),
        (-1, ImportanceLevel.NOT_IMPORTANT, False),
        (0.4, ImportanceLevel.SOMEWHAT_IMPORTANT, False),
        ("1", ImportanceLevel.IMPORTANT, False),
        (None, ImportanceLevel.SOMEWHAT_IMPORTANT, False),
    ])
    def test_importance(self, normalizer, raw, level, dealbreaker):
        """Numbers are clamped to [0, 2] and snapped to the nearest level."""
        assert normalizer.decode_importance("q7", raw) == (level, dealbreaker)

    def test_dealbreaker_flag(self, normalizer, table):
        response = normalizer.normalize_response(
            table.spec("q9"),
            {"answer": ["none"], "preference": ["none"], "isDealbreaker": True},
        )
        assert response.is_dealbreaker
        assert response.answer == SubstanceUseAnswer(frozenset({"none"}))

    def test_substance_use(self, normalizer, table):
        spec = table.spec("q9")
        answer = normalizer.decode_answer(spec, {"substances": ["Cannabis"], "frequency": "Occasionally"})
        assert answer == SubstanceUseAnswer(frozenset({"cannabis"}), "occasionally")
        none = normalizer.decode_answer(spec, {"substances": ["none", "cannabis"], "frequency": "rarely"})
        assert none == SubstanceUseAnswer(frozenset({"none"}), None)

    def test_prefer_not_to_answer(self, normalizer, table):
        assert normalizer.decode_answer(table.spec("q8"), "Prefer not to answer") == PREFER_NOT_TO_ANSWER

    def test_number_wildcard_and_token(self, normalizer, table):
        assert normalizer.decode_answer(table.spec("q29"), "FLEXIBLE") == "flexible"
        with pytest.raises(DataShapeError):
            normalizer.decode_answer(table.spec("q7"), "very left")

    def test_age_preference_becomes_range(self, normalizer, table):
        response = normalizer.normalize_response(
            table.spec("q4"), {"answer": {"userAge": 22, "minAge": 20, "maxAge": 25}}
        )
        assert response.answer == AgeAnswer(22, 20, 25)
        assert response.preference == PreferenceSpec.within(20, 25)


class TestCandidateNormalization:
    """Whole candidate records."""

    def test_candidate(self, normalizer):
        candidate = normalizer.normalize_candidate(_record(
            interestedInGenders=["Man", "non-binary"],
            okMatchingDifferentCampus=False,
            responses={
                "q7": {"answer": 2, "preference": "similar", "importance": "important"},
                "q99": {"answer": "ignored"},
            },
        ))
        assert candidate.id == "u1"
        assert candidate.gender == "women"
        assert candidate.interested_in_genders == frozenset({"men", "non_binary"})
        assert candidate.campus == "North"
        assert candidate.ok_matching_different_campus is False
        assert set(candidate.responses) == {"q7"}

    def test_gender_from_questions(self, normalizer):
        record = {
            "userId": 7,
            "answers": {"q1": "Male", "q2": {"answer": ["women"]}},
        }
        candidate = normalizer.normalize_candidate(record)
        assert candidate.id == "7"
        assert candidate.gender == "men"
        assert candidate.interested_in_genders == frozenset({"women"})
        assert candidate.ok_matching_different_campus is True

    def test_bad_answer_dropped_not_fatal(self, normalizer):
        """An unrecognised answer shape is treated as unanswered."""
        candidate = normalizer.normalize_candidate(_record(responses={
            "q4": {"answer": {"years": 23}},
            "q7": {"answer": 3},
        }))
        assert "q4" not in candidate.responses
        assert "q7" in candidate.responses
        assert normalizer.dropped_answers == 1

    def test_pool_rejections(self, normalizer):
        """Missing gender and duplicate ids are rejected, the rest survive."""
        records = [
            _record(id="a"),
            _record(id="b", gender=None),
            _record(id="a"),
            _record(id="c"),
        ]
        candidates, rejected = normalizer.normalize_pool(records)
        assert [c.id for c in candidates] == ["a", "c"]
        assert [user_id for user_id, _ in rejected] == ["b", "a"]
