"""Tests for the hard filter stage."""

import pytest

from matchmaking.filters import (
    AGE_REASON,
    CAMPUS_REASON,
    DEALBREAKER_REASON,
    GENDER_REASON,
    acts_as_dealbreaker,
    check_hard_filters,
    is_compatible_with_preference,
)
from matchmaking.schema import (
    PREFER_NOT_TO_ANSWER,
    ImportanceLevel,
    PreferenceSpec,
    PreferenceType,
    SubstanceUseAnswer,
)


class TestGenderFilter:
    """Both sides must be open to the other's gender."""

    def test_mutual_interest_passes(self, make_candidate, table, config):
        a = make_candidate("a", gender="women", interested=("men",))
        b = make_candidate("b", gender="men", interested=("women",))
        assert check_hard_filters(a, b, table, config).passed

    def test_one_sided_interest_fails(self, make_candidate, table, config):
        """A woman seeking men and a woman seeking women never match."""
        a = make_candidate("a", gender="women", interested=("men",))
        b = make_candidate("b", gender="women", interested=("women",))
        result = check_hard_filters(a, b, table, config)
        assert not result.passed
        assert result.reason == GENDER_REASON

    def test_anyone_accepts_every_gender(self, make_candidate, table, config):
        a = make_candidate("a", gender="non_binary", interested=("anyone",))
        b = make_candidate("b", gender="men", interested=("non_binary",))
        assert check_hard_filters(a, b, table, config).passed

    def test_prefer_not_to_say_needs_anyone(self, make_candidate, table, config):
        hidden = make_candidate("a", gender="prefer_not_to_say", interested=("anyone",))
        specific = make_candidate("b", gender="men", interested=("women", "non_binary"))
        open_to_all = make_candidate("c", gender="men", interested=("anyone",))
        assert not check_hard_filters(hidden, specific, table, config).passed
        assert check_hard_filters(hidden, open_to_all, table, config).passed


class TestCampusFilter:

    def test_same_campus(self, make_candidate, table, config):
        a = make_candidate("a", campus="North", ok_different_campus=False)
        b = make_candidate("b", gender="men", interested=("women",), campus="north")
        assert check_hard_filters(a, b, table, config).passed

    def test_different_campus_needs_both_willing(self, make_candidate, table, config):
        a = make_candidate("a", campus="North", ok_different_campus=False)
        b = make_candidate("b", gender="men", interested=("women",), campus="South")
        result = check_hard_filters(a, b, table, config)
        assert not result.passed
        assert result.reason == CAMPUS_REASON

    def test_different_campus_both_willing(self, make_candidate, table, config):
        a = make_candidate("a", campus="North")
        b = make_candidate("b", gender="men", interested=("women",), campus="South")
        assert check_hard_filters(a, b, table, config).passed

    def test_unknown_campus_passes(self, make_candidate, table, config):
        a = make_candidate("a", campus=None, ok_different_campus=False)
        b = make_candidate("b", gender="men", interested=("women",), campus="South")
        assert check_hard_filters(a, b, table, config).passed


class TestAgeFilter:

    def test_inside_both_ranges(self, make_candidate, table, config):
        a = make_candidate("a", age=(22, 20, 25))
        b = make_candidate("b", gender="men", interested=("women",), age=(24, 21, 26))
        assert check_hard_filters(a, b, table, config).passed

    def test_outside_one_range(self, make_candidate, table, config):
        a = make_candidate("a", age=(22, 20, 23))
        b = make_candidate("b", gender="men", interested=("women",), age=(24, 18, 30))
        result = check_hard_filters(a, b, table, config)
        assert not result.passed
        assert result.reason == AGE_REASON
        assert result.failed_questions == ("q4",)

    def test_open_bounds(self, make_candidate, table, config):
        a = make_candidate("a", age=(22, 20, None))
        b = make_candidate("b", gender="men", interested=("women",), age=(40, None, None))
        assert check_hard_filters(a, b, table, config).passed

    def test_unknown_age_fails_declared_range(self, make_candidate, table, config):
        a = make_candidate("a", age=(22, 20, 25))
        b = make_candidate("b", gender="men", interested=("women",))
        assert not check_hard_filters(a, b, table, config).passed


class TestDealbreakers:
    """Dealbreakers and conditional hard filters."""

    def test_substance_dealbreaker(self, make_candidate, make_response, table, config):
        """A sober-only dealbreaker rejects an occasional cannabis user."""
        a = make_candidate("a", responses={
            "q9": make_response(
                SubstanceUseAnswer(frozenset({"none"})),
                PreferenceSpec.specific({"none"}),
                dealbreaker=True,
            ),
        })
        b = make_candidate("b", gender="men", interested=("women",), responses={
            "q9": make_response(SubstanceUseAnswer(frozenset({"cannabis"}), "occasionally")),
        })
        result = check_hard_filters(a, b, table, config)
        assert not result.passed
        assert result.reason == DEALBREAKER_REASON
        assert result.failed_questions == ("q9",)

    def test_substance_list_must_all_be_acceptable(self, make_candidate, make_response, table, config):
        """Every substance the peer uses has to be on the acceptable list."""
        a = make_candidate("a", responses={
            "q9": make_response(
                SubstanceUseAnswer(frozenset({"cannabis"}), "rarely"),
                PreferenceSpec.specific({"cannabis", "none"}),
                dealbreaker=True,
            ),
        })
        mixed = make_candidate("b", gender="men", interested=("women",), responses={
            "q9": make_response(SubstanceUseAnswer(frozenset({"cannabis", "cigarettes"}), "rarely")),
        })
        cannabis = make_candidate("c", gender="men", interested=("women",), responses={
            "q9": make_response(SubstanceUseAnswer(frozenset({"cannabis"}), "rarely")),
        })
        sober = make_candidate("d", gender="men", interested=("women",), responses={
            "q9": make_response(SubstanceUseAnswer(frozenset())),
        })
        assert check_hard_filters(a, mixed, table, config).failed_questions == ("q9",)
        assert check_hard_filters(a, cannabis, table, config).passed
        assert check_hard_filters(a, sober, table, config).passed

    def test_conditional_filter_promotes_importance(self, make_candidate, make_response, table, config):
        """q9 marked important acts as a dealbreaker without the explicit flag."""
        a = make_candidate("a", responses={
            "q9": make_response(
                SubstanceUseAnswer(frozenset({"none"})),
                PreferenceSpec.specific({"none"}),
                importance=ImportanceLevel.IMPORTANT,
            ),
        })
        b = make_candidate("b", gender="men", interested=("women",), responses={
            "q9": make_response(SubstanceUseAnswer(frozenset({"vaping"}), "rarely")),
        })
        assert check_hard_filters(a, b, table, config).failed_questions == ("q9",)

    def test_conditional_filter_levels(self, make_response, config):
        important = make_response(frozenset({"white"}), importance=ImportanceLevel.IMPORTANT)
        very = make_response(frozenset({"white"}), importance=ImportanceLevel.VERY_IMPORTANT)
        wildcard = make_response(
            frozenset({"white"}), PreferenceType.DOESNT_MATTER, ImportanceLevel.VERY_IMPORTANT, True
        )
        assert not acts_as_dealbreaker("q5", important, config)
        assert acts_as_dealbreaker("q5", very, config)
        assert not acts_as_dealbreaker("q5", wildcard, config)

    def test_missing_peer_answer_fails(self, make_candidate, make_response, table, config):
        a = make_candidate("a", responses={"q7": make_response(3, dealbreaker=True)})
        b = make_candidate("b", gender="men", interested=("women",))
        assert check_hard_filters(a, b, table, config).failed_questions == ("q7",)

    def test_prefer_not_to_answer_fails(self, make_candidate, make_response, table, config):
        a = make_candidate("a", responses={"q8": make_response("never", dealbreaker=True)})
        b = make_candidate("b", gender="men", interested=("women",), responses={
            "q8": make_response(PREFER_NOT_TO_ANSWER),
        })
        assert not check_hard_filters(a, b, table, config).passed

    def test_all_failures_collected(self, make_candidate, make_response, table, config):
        """Every failing dealbreaker is reported, in question order."""
        a = make_candidate("a", responses={
            "q7": make_response(1, dealbreaker=True),
            "q11": make_response("monogamous", PreferenceType.SAME, dealbreaker=True),
            "q24": make_response(5, dealbreaker=True),
        })
        b = make_candidate("b", gender="men", interested=("women",), responses={
            "q7": make_response(5),
            "q11": make_response("open", dealbreaker=True),
            "q24": make_response(1),
        })
        result = check_hard_filters(a, b, table, config)
        assert result.failed_questions == ("q7", "q11", "q24")

    def test_symmetric(self, make_candidate, make_response, table, config):
        a = make_candidate("a", responses={"q10": make_response(3, PreferenceType.MORE, dealbreaker=True)})
        b = make_candidate("b", gender="men", interested=("women",), responses={"q10": make_response(2)})
        assert check_hard_filters(a, b, table, config) == check_hard_filters(b, a, table, config)

    def test_symmetric_on_synthetic_pool(self, synthetic_candidates, table, config):
        candidates = synthetic_candidates(20, seed=11)
        for i, a in enumerate(candidates):
            for b in candidates[i + 1:]:
                assert (
                    check_hard_filters(a, b, table, config).passed
                    == check_hard_filters(b, a, table, config).passed
                )


class TestPreferenceCompatibility:
    """The preference rule a dealbreaker is checked with."""

    @pytest.mark.parametrize("preference,own,peer,expected", [
        (PreferenceType.SIMILAR, 3, 4, True),
        (PreferenceType.SIMILAR, 3, 5, False),
        (PreferenceType.DIFFERENT, 1, 3, True),
        (PreferenceType.DIFFERENT, 2, 3, False),
        (PreferenceType.MORE, 3, 3, True),
        (PreferenceType.MORE, 3, 2, False),
        (PreferenceType.LESS, 3, 1, True),
        (PreferenceType.LESS, 3, 4, False),
        (PreferenceType.SAME, 4, 4, True),
        (PreferenceType.DOESNT_MATTER, 1, 5, True),
    ])
    def test_scale_rules(self, make_response, table, preference, own, peer, expected):
        spec = table.spec("q10")
        assert is_compatible_with_preference(
            spec, make_response(own, preference), make_response(peer)
        ) is expected

    def test_specific_values_and_range(self, make_response, table):
        spec = table.spec("q14")
        own = make_response("arts", PreferenceSpec.specific({"science", "law"}))
        assert is_compatible_with_preference(spec, own, make_response("law"))
        assert not is_compatible_with_preference(spec, own, make_response("arts"))

        ranged = make_response(3, PreferenceSpec.within(2, 4))
        assert is_compatible_with_preference(table.spec("q10"), ranged, make_response(4))
        assert not is_compatible_with_preference(table.spec("q10"), ranged, make_response(5))

    def test_complement(self, make_response, table):
        spec = table.spec("q31")
        own = make_response("routine", PreferenceType.COMPLEMENT)
        assert is_compatible_with_preference(spec, own, make_response("spontaneous"))
        assert not is_compatible_with_preference(spec, own, make_response("balanced"))
