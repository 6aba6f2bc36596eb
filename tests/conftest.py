"""
Pytest configuration and shared fixtures.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pytest

from matchmaking.configs import MatchingConfig
from matchmaking.preprocessing import ResponseNormalizer
from matchmaking.questions import resolve_question_table
from matchmaking.schema import (
    AgeAnswer,
    Candidate,
    ImportanceLevel,
    LoveLanguageAnswer,
    PairScore,
    PairScoreDiagnostics,
    PreferenceSpec,
    PreferenceType,
    QuestionResponse,
    SubstanceUseAnswer,
)
from matchmaking.scoring import mutual_score

CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "config.yaml"


@pytest.fixture
def config() -> MatchingConfig:
    """Default matching configuration."""
    return MatchingConfig()


@pytest.fixture
def table(config):
    """Question table resolved against the default sections."""
    return resolve_question_table(config)


@pytest.fixture
def normalizer(table, config) -> ResponseNormalizer:
    return ResponseNormalizer(table, config)


@pytest.fixture
def config_path() -> Path:
    """Path to the shipped YAML configuration."""
    return CONFIG_PATH


@pytest.fixture
def make_response():
    """Factory for QuestionResponse with readable defaults."""
    def _make(
        answer: Any,
        preference: Any = PreferenceType.SIMILAR,
        importance: ImportanceLevel = ImportanceLevel.SOMEWHAT_IMPORTANT,
        dealbreaker: bool = False,
    ) -> QuestionResponse:
        if isinstance(preference, PreferenceType):
            preference = PreferenceSpec(preference)
        return QuestionResponse(
            answer=answer,
            preference=preference,
            importance=importance,
            is_dealbreaker=dealbreaker,
        )
    return _make


@pytest.fixture
def make_candidate():
    """Factory for Candidate; `age` is (age, min, max)."""
    def _make(
        candidate_id: str,
        gender: str = "women",
        interested: Tuple[str, ...] = ("men",),
        responses: Optional[Dict[str, QuestionResponse]] = None,
        campus: Optional[str] = None,
        ok_different_campus: bool = True,
        age: Optional[Tuple[Optional[int], Optional[int], Optional[int]]] = None,
    ) -> Candidate:
        responses = dict(responses or {})
        if age is not None:
            responses["q4"] = QuestionResponse(
                answer=AgeAnswer(*age),
                preference=PreferenceSpec.within(age[1], age[2]),
            )
        return Candidate(
            id=candidate_id,
            gender=gender,
            interested_in_genders=frozenset(interested),
            campus=campus,
            ok_matching_different_campus=ok_different_campus,
            responses=responses,
        )
    return _make


@pytest.fixture
def shared_profile(make_response) -> Dict[str, QuestionResponse]:
    """Responses covering every similarity kind; identical copies score 1.0 everywhere."""
    return {
        "q3": make_response("straight"),
        "q6": make_response(frozenset({"agnostic"})),
        "q7": make_response(3),
        "q8": make_response("socially"),
        "q9": make_response(SubstanceUseAnswer(frozenset({"none"}))),
        "q10": make_response(4, PreferenceType.MORE),
        "q13": make_response(frozenset({"long-term"})),
        "q14": make_response("science"),
        "q21": make_response(
            LoveLanguageAnswer(
                show=frozenset({"quality-time", "acts-of-service"}),
                receive=frozenset({"quality-time"}),
            )
        ),
        "q22": make_response(2),
        "q25": make_response(frozenset({"compromise-focused"})),
        "q29": make_response("night-owl"),
        "q31": make_response("balanced"),
    }


@pytest.fixture
def make_pair():
    """Factory for PairScore from two directional scores."""
    def _make(a_id: str, b_id: str, a_to_b: float, b_to_a: Optional[float] = None,
              alpha: float = 0.65) -> PairScore:
        b_to_a = a_to_b if b_to_a is None else b_to_a
        return PairScore(
            a_id=a_id,
            b_id=b_id,
            score_a_to_b=a_to_b,
            score_b_to_a=b_to_a,
            pair_score=mutual_score(a_to_b, b_to_a, alpha),
            diagnostics=PairScoreDiagnostics(mutuality_penalty=0.0, question_count=0),
        )
    return _make


@pytest.fixture
def synthetic_candidates(normalizer):
    """Normalize a synthetic pool of the given size and seed."""
    from matchmaking.data_loading import generate_synthetic_records

    def _make(n_candidates: int, seed: int):
        candidates, rejected = normalizer.normalize_pool(
            generate_synthetic_records(n_candidates, random_seed=seed)
        )
        assert not rejected
        return candidates
    return _make
