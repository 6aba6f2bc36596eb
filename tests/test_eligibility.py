"""Tests for the eligibility gates."""

from dataclasses import replace

import pytest

from matchmaking.filters import check_hard_filters
from matchmaking.scoring import check_eligibility, filter_eligible, find_best_scores, score_pair


class TestBestScores:

    def test_best_is_highest_pair_score(self, make_pair):
        """A 90/40 pair (48.75) loses to a 60/70 pair (61.75) despite the higher direction."""
        pairs = [make_pair("a", "b", 90, 40), make_pair("a", "c", 60, 70)]
        best = find_best_scores(pairs)
        assert best["a"].score == pytest.approx(61.75)
        assert best["a"].partner_id == "c"
        assert best["b"].score == pytest.approx(48.75)
        assert best["c"].partner_id == "a"

    def test_ties_go_to_smaller_id(self, make_pair):
        pairs = [make_pair("a", "c", 70), make_pair("a", "b", 70)]
        assert find_best_scores(pairs)["a"].partner_id == "b"


class TestGates:

    def test_absolute_floor(self, make_pair, config):
        """A 90/40 pair scores 48.75 and misses the floor of 50."""
        pair = make_pair("a", "b", 90, 40)
        assert pair.pair_score == pytest.approx(48.75)
        result = check_eligibility(pair, 48.75, 48.75, config)
        assert not result.eligible
        assert not result.passed_absolute
        assert result.passed_relative_a and result.passed_relative_b
        assert len(result.failure_reasons) == 1

    def test_relative_floor(self, make_pair, config):
        pairs = [make_pair("a", "b", 90), make_pair("a", "c", 50, 80)]
        report = filter_eligible(pairs, config)
        result = report.result_for("c", "a")
        assert result.passed_absolute
        assert not result.passed_relative_a
        assert result.passed_relative_b
        assert result.threshold_a == pytest.approx(54.0)
        assert report.failed_relative_a == 1
        assert report.failed_absolute == 0
        assert [(e.a_id, e.b_id) for e in report.eligible] == [("a", "b")]

    def test_relative_floor_uses_best_pair_score(self, make_pair, config):
        """A lopsided 100/20 pair must not raise a's ceiling above what a pair reached."""
        pairs = [make_pair("a", "b", 100, 20), make_pair("a", "c", 55, 80)]
        report = filter_eligible(pairs, config)

        assert report.best_scores["a"].score == pytest.approx(59.375)
        result = report.result_for("a", "c")
        assert result.eligible
        assert result.threshold_a == pytest.approx(0.6 * 59.375)
        assert [(e.a_id, e.b_id) for e in report.eligible] == [("a", "c")]
        assert report.perfectionists == ("b",)

    def test_perfectionists(self, make_pair, config):
        """Candidates with scored pairs but no eligible pair are reported."""
        pairs = [make_pair("a", "b", 90), make_pair("a", "c", 50, 80)]
        assert filter_eligible(pairs, config).perfectionists == ("c",)

    def test_empty_batch(self, config):
        report = filter_eligible([], config)
        assert report.eligible == ()
        assert report.perfectionists == ()


class TestMonotonicity:
    """Raising either threshold can only shrink the eligible set."""

    @pytest.fixture
    def scored_pairs(self, synthetic_candidates, table, config):
        candidates = synthetic_candidates(16, seed=2)
        pairs = []
        for i, a in enumerate(candidates):
            for b in candidates[i + 1:]:
                if check_hard_filters(a, b, table, config).passed:
                    pairs.append(score_pair(a, b, table, config))
        return pairs

    @staticmethod
    def _eligible_ids(pairs, config):
        return {(e.a_id, e.b_id) for e in filter_eligible(pairs, config).eligible}

    def test_t_min(self, scored_pairs, config):
        previous = None
        for t_min in (0.0, 20.0, 40.0, 50.0, 60.0, 80.0):
            current = self._eligible_ids(scored_pairs, replace(config, t_min=t_min))
            if previous is not None:
                assert current <= previous
            previous = current

    def test_beta(self, scored_pairs, config):
        previous = None
        for beta in (0.0, 0.3, 0.6, 0.8, 1.0):
            current = self._eligible_ids(scored_pairs, replace(config, beta=beta))
            if previous is not None:
                assert current <= previous
            previous = current
