"""Tests for per-question similarity functions."""

from dataclasses import replace

import pytest

from matchmaking.errors import ConfigurationError
from matchmaking.filters import is_compatible_with_preference
from matchmaking.interfaces import StaticTextSimilarity
from matchmaking.questions import DEFAULT_CATALOG, resolve_question_table
from matchmaking.schema import (
    PREFER_NOT_TO_ANSWER,
    LoveLanguageAnswer,
    PreferenceSpec,
    PreferenceType,
    SubstanceUseAnswer,
)
from matchmaking.similarity import (
    SIMILARITY_FUNCTIONS,
    calculate_similarities,
    conflict_matrix_score,
    jaccard,
    question_similarity,
    substance_base_similarity,
)

DM = PreferenceType.DOESNT_MATTER


def _similarity(table, question_id, a, b):
    return question_similarity(table.spec(question_id), a, b)


class TestOrdinal:

    def test_linear_decay(self, make_response, table):
        assert _similarity(table, "q7", make_response(2), make_response(4)) == pytest.approx(0.5)
        assert _similarity(table, "q7", make_response(1), make_response(5)) == 0.0

    def test_token_scale(self, make_response, table):
        """Alcohol uses its option order as the scale."""
        assert _similarity(table, "q8", make_response("never"), make_response("socially")) == pytest.approx(1 / 3)

    def test_same_requires_equal(self, make_response, table):
        a = make_response(3, PreferenceType.SAME)
        assert _similarity(table, "q7", a, make_response(4)) == 0.0
        assert _similarity(table, "q7", a, make_response(3)) == 1.0

    def test_wildcard_answer(self, make_response, table):
        """A "flexible" sleep schedule works with anyone."""
        assert _similarity(table, "q29", make_response("flexible"), make_response("early-bird")) == 1.0

    def test_prefer_not_to_answer_scores_zero(self, make_response, table):
        assert _similarity(table, "q8", make_response("never"), make_response(PREFER_NOT_TO_ANSWER)) == 0.0


class TestSleepSchedule:

    def test_flexible_fits_anyone(self, make_response, table):
        assert _similarity(table, "q29", make_response("flexible"), make_response("night-owl")) == 1.0
        assert _similarity(table, "q29", make_response("irregular"), make_response("flexible")) == 1.0

    def test_same_schedule(self, make_response, table):
        assert _similarity(table, "q29", make_response("early-bird"), make_response("early-bird")) == 1.0

    def test_mismatched_schedules(self, make_response, table):
        early, night = make_response("early-bird"), make_response("night-owl")
        assert _similarity(table, "q29", early, night) == pytest.approx(0.3)
        assert _similarity(table, "q29", make_response("irregular"), early) == pytest.approx(0.3)

    def test_both_irregular(self, make_response, table):
        irregular = make_response("irregular")
        assert _similarity(table, "q29", irregular, irregular) == pytest.approx(0.6)

    def test_unknown_schedule(self, make_response, table):
        assert _similarity(table, "q29", make_response("early-bird"), make_response("nocturnal")) == 0.0

    def test_specific_values(self, make_response, table):
        picky = make_response("early-bird", PreferenceSpec.specific({"early-bird"}))
        assert _similarity(table, "q29", picky, make_response("night-owl", DM)) == 0.0
        assert _similarity(table, "q29", picky, make_response("flexible", DM)) == 1.0


class TestMultiSelect:

    def test_similar_floor(self, make_response, table):
        a = make_response(frozenset({"long-term", "casual"}))
        b = make_response(frozenset({"long-term", "friendship"}))
        assert _similarity(table, "q13", a, b) == pytest.approx(0.5)

    def test_same_is_plain_jaccard(self, make_response, table):
        a = make_response(frozenset({"long-term", "casual"}), PreferenceType.SAME)
        b = make_response(frozenset({"long-term", "friendship"}), PreferenceType.SAME)
        assert _similarity(table, "q13", a, b) == pytest.approx(1 / 3)

    def test_no_overlap(self, make_response, table):
        a = make_response(frozenset({"casual"}))
        b = make_response(frozenset({"friendship"}))
        assert _similarity(table, "q13", a, b) == 0.0

    def test_jaccard(self):
        assert jaccard(frozenset(), frozenset()) == 1.0
        assert jaccard(frozenset({"a", "b"}), frozenset({"b", "c"})) == pytest.approx(1 / 3)


class TestSingleVsMulti:

    def test_weaker_side_wins(self, make_response, table):
        a = make_response("science", PreferenceSpec.specific({"science", "engineering"}))
        b = make_response("engineering", PreferenceSpec.specific({"arts"}))
        assert _similarity(table, "q14", a, b) == 0.0

    def test_both_accepted(self, make_response, table):
        a = make_response("science", PreferenceSpec.specific({"science", "engineering"}))
        b = make_response("engineering", DM)
        assert _similarity(table, "q14", a, b) == 1.0


class TestSubstanceUse:

    def test_abstainers(self, make_response, table):
        none = make_response(SubstanceUseAnswer(frozenset({"none"})))
        user = make_response(SubstanceUseAnswer(frozenset({"cannabis"}), "rarely"))
        assert _similarity(table, "q9", none, none) == 1.0
        assert _similarity(table, "q9", none, user) == 0.0

    def test_overlap_and_frequency(self):
        """Mean of overlap ratio (1/2) and frequency proximity (1/3)."""
        a = SubstanceUseAnswer(frozenset({"cannabis"}), "occasionally")
        b = SubstanceUseAnswer(frozenset({"cannabis", "vaping"}), "frequently")
        assert substance_base_similarity(a, b) == pytest.approx((0.5 + 1 / 3) / 2)

    def test_unknown_frequency_uses_overlap(self):
        a = SubstanceUseAnswer(frozenset({"cannabis"}))
        b = SubstanceUseAnswer(frozenset({"cannabis", "vaping"}), "rarely")
        assert substance_base_similarity(a, b) == pytest.approx(0.5)

    def test_more_preference_satisfied(self, make_response, table):
        a = make_response(SubstanceUseAnswer(frozenset({"cannabis"}), "occasionally"), PreferenceType.MORE)
        b = make_response(SubstanceUseAnswer(frozenset({"vaping"}), "frequently"), DM)
        assert _similarity(table, "q9", a, b) == 1.0

    def test_specific_values_agree_with_dealbreaker(self, make_response, table):
        """Specific substances score 1 only when the dealbreaker check would pass."""
        spec = table.spec("q9")
        picky = make_response(
            SubstanceUseAnswer(frozenset({"cannabis"}), "rarely"),
            PreferenceSpec.specific({"cannabis"}),
        )
        for substances, accepted in (
            (frozenset({"cannabis"}), True),
            (frozenset({"cannabis", "cigarettes"}), False),
            (frozenset({"none"}), False),
        ):
            peer = make_response(SubstanceUseAnswer(substances, "rarely"), DM)
            assert is_compatible_with_preference(spec, picky, peer) is accepted
            assert _similarity(table, "q9", picky, peer) == (1.0 if accepted else 0.0)


class TestDirectional:

    def test_more_satisfied_and_similar(self, make_response, table):
        a = make_response(3, PreferenceType.MORE)
        b = make_response(4)
        assert _similarity(table, "q10", a, b) == pytest.approx(0.75)

    def test_more_violated_partial_credit(self, make_response, table):
        a = make_response(3, PreferenceType.MORE)
        b = make_response(2, DM)
        assert _similarity(table, "q10", a, b) == pytest.approx(0.5)

    def test_complement_rewards_distance(self, make_response, table):
        a = make_response(1, PreferenceType.COMPLEMENT)
        b = make_response(5, DM)
        assert _similarity(table, "q22", a, b) == 1.0

    def test_range_preference(self, make_response, table):
        a = make_response(3, PreferenceSpec.within(3, 5))
        assert _similarity(table, "q10", a, make_response(4, DM)) == 1.0
        assert _similarity(table, "q10", a, make_response(2, DM)) == 0.0


class TestDifferentAndSpecialCases:

    def test_complementary_answers(self, make_response, table):
        a = make_response("routine", PreferenceType.COMPLEMENT)
        b = make_response("spontaneous", PreferenceType.COMPLEMENT)
        assert _similarity(table, "q31", a, b) == 1.0

    def test_different_wanted_but_same(self, make_response, table):
        a = make_response("routine", PreferenceType.DIFFERENT)
        b = make_response("routine", PreferenceType.DIFFERENT)
        assert _similarity(table, "q31", a, b) == 0.0

    def test_love_languages(self, make_response, table):
        """Shows 60%, receives 40%; a gives 0.8, b gives 0.7 and the weaker side wins."""
        a = make_response(LoveLanguageAnswer(
            show=frozenset({"quality-time", "physical-touch"}),
            receive=frozenset({"words-of-affirmation", "quality-time"}),
        ))
        b = make_response(LoveLanguageAnswer(
            show=frozenset({"quality-time"}),
            receive=frozenset({"quality-time"}),
        ))
        assert _similarity(table, "q21", a, b) == pytest.approx(0.7)

    def test_love_language_weights_from_config(self, make_response, config):
        a = make_response(LoveLanguageAnswer(
            show=frozenset({"quality-time", "physical-touch"}),
            receive=frozenset({"words-of-affirmation", "quality-time"}),
        ))
        b = make_response(LoveLanguageAnswer(
            show=frozenset({"quality-time"}),
            receive=frozenset({"quality-time"}),
        ))
        even = replace(config, love_language_weights={"show": 0.5, "receive": 0.5})
        table = resolve_question_table(even)
        assert table.spec("q21").component_weights == (0.5, 0.5)
        assert _similarity(table, "q21", a, b) == pytest.approx(0.75)

    def test_conflict_matrix(self, make_response, table):
        compromise = make_response(frozenset({"compromise-focused"}))
        solution = make_response(frozenset({"solution-focused"}))
        space = make_response(frozenset({"space-first"}))
        direct = make_response(frozenset({"direct-address"}))
        assert _similarity(table, "q25", compromise, solution) == pytest.approx(0.9)
        assert _similarity(table, "q25", space, direct) == pytest.approx(0.2)

    def test_conflict_matrix_is_symmetric(self):
        styles = ["compromise-focused", "emotion-focused", "space-first", "analysis-focused"]
        for x in styles:
            for y in styles:
                assert conflict_matrix_score(frozenset({x}), frozenset({y})) == conflict_matrix_score(
                    frozenset({y}), frozenset({x})
                )

    def test_conflict_same_without_overlap(self, make_response, table):
        a = make_response(frozenset({"space-first"}), PreferenceType.SAME)
        b = make_response(frozenset({"direct-address"}))
        assert _similarity(table, "q25", a, b) == 0.0


class TestDispatch:
    """Wildcards, missing answers and the dispatch table."""

    @pytest.mark.parametrize("question_id,a,b", [
        ("q3", "straight", "gay"),
        ("q7", 1, 5),
        ("q13", frozenset({"casual"}), frozenset({"long-term"})),
        ("q14", "arts", "law"),
        ("q10", 1, 5),
        ("q31", "routine", "routine"),
        ("q25", frozenset({"space-first"}), frozenset({"direct-address"})),
    ])
    def test_both_wildcards_score_one(self, make_response, table, question_id, a, b):
        assert _similarity(table, question_id, make_response(a, DM), make_response(b, DM)) == 1.0

    def test_missing_answer_scores_zero(self, make_response, table):
        assert _similarity(table, "q7", make_response(3), None) == 0.0
        assert _similarity(table, "q7", None, make_response(3)) == 0.0

    def test_unmapped_kind(self, make_response):
        with pytest.raises(ConfigurationError):
            question_similarity(DEFAULT_CATALOG["q4"], make_response(20), make_response(21))

    def test_every_scored_kind_has_a_function(self, table):
        for question_id in table.scored_ids:
            spec = table.spec(question_id)
            if spec.kind.value != "free_text":
                assert spec.kind in SIMILARITY_FUNCTIONS

    def test_identical_profiles(self, make_candidate, shared_profile, table):
        a = make_candidate("a", responses=shared_profile)
        b = make_candidate("b", gender="men", interested=("women",), responses=shared_profile)
        similarities = calculate_similarities(a, b, table)
        assert set(similarities) == set(shared_profile)
        assert all(value == 1.0 for value in similarities.values())

    def test_unanswered_by_both_is_excluded(self, make_candidate, make_response, table):
        a = make_candidate("a", responses={"q7": make_response(3)})
        b = make_candidate("b", responses={"q22": make_response(3)})
        assert calculate_similarities(a, b, table) == {"q7": 0.0, "q22": 0.0}


class TestFreeText:
    """Free-text similarity comes only from the provider."""

    def test_provider_value_used(self, make_candidate, table):
        provider = StaticTextSimilarity()
        provider.add("q37", "b", "a", 0.8)
        a, b = make_candidate("a"), make_candidate("b")
        assert calculate_similarities(a, b, table, provider) == {"q37": 0.8}

    def test_missing_provider(self, make_candidate, table):
        assert calculate_similarities(make_candidate("a"), make_candidate("b"), table) == {}

    def test_failing_provider_is_excluded(self, make_candidate, table):
        class BrokenProvider:
            def similarity(self, question_id, a_id, b_id):
                raise RuntimeError("embedding service unavailable")

        similarities = calculate_similarities(
            make_candidate("a"), make_candidate("b"), table, BrokenProvider()
        )
        assert "q37" not in similarities

    def test_value_is_clamped(self, make_candidate, table):
        provider = StaticTextSimilarity()
        provider.add("q37", "a", "b", 1.7)
        assert calculate_similarities(make_candidate("a"), make_candidate("b"), table, provider)["q37"] == 1.0
