"""
Synthetic candidate pools.

Generates stored-format candidate records (the same shape the normalizer
reads from the store) for demonstrations and property tests. Reproducible
given a random seed.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from ..questions.catalog import (
    DEFAULT_CATALOG,
    LOVE_LANGUAGES,
    SUBSTANCE_FREQUENCIES,
    AnswerShape,
    QuestionKind,
    QuestionSpec,
)

logger = logging.getLogger(__name__)

GENDERS = ["woman", "man", "non-binary"]
GENDER_PREFERENCES = [["men"], ["women"], ["men", "women"], ["anyone"], ["non-binary", "women"]]
CAMPUSES = ["North", "South"]
IMPORTANCE_LEVELS = ["not_important", "somewhat_important", "important", "very_important"]
DEALBREAKER_RATE = 0.03


def _pick(rng: np.random.RandomState, values: List[Any]) -> Any:
    return values[rng.randint(len(values))]


def _subset(rng: np.random.RandomState, values, low: int, high: int) -> List[Any]:
    size = rng.randint(low, high + 1)
    indices = sorted(rng.choice(len(values), size=min(size, len(values)), replace=False))
    return [values[i] for i in indices]


def _preference_for(rng: np.random.RandomState, spec: QuestionSpec) -> Any:
    if spec.kind is QuestionKind.DIRECTIONAL:
        return _pick(rng, ["more", "less", "similar", "same", "doesntMatter"])
    if spec.kind is QuestionKind.DIFFERENT:
        return _pick(rng, ["different", "complement", "same", "doesntMatter"])
    if spec.kind in (QuestionKind.CATEGORICAL, QuestionKind.SINGLE_VS_MULTI):
        if rng.rand() < 0.3:
            return _subset(rng, list(spec.options), 1, 3)
        return _pick(rng, ["same", "doesntMatter"])
    return _pick(rng, ["similar", "same", "doesntMatter"])


def _answer_for(rng: np.random.RandomState, spec: QuestionSpec) -> Any:
    options = list(spec.options)
    if spec.shape is AnswerShape.NUMBER:
        return int(_pick(rng, options))
    if spec.shape is AnswerShape.TOKEN:
        if spec.wildcard is not None and rng.rand() < 0.15:
            return spec.wildcard
        return _pick(rng, options)
    if spec.shape is AnswerShape.TOKEN_SET:
        return _subset(rng, options, 1, 2)
    if spec.shape is AnswerShape.LOVE_LANGUAGES:
        return {
            "show": _subset(rng, list(LOVE_LANGUAGES), 1, 3),
            "receive": _subset(rng, list(LOVE_LANGUAGES), 1, 3),
        }
    if spec.shape is AnswerShape.SUBSTANCE_USE:
        if rng.rand() < 0.6:
            return {"substances": ["none"]}
        return {
            "substances": _subset(rng, [o for o in options if o != "none"], 1, 2),
            "frequency": _pick(rng, list(SUBSTANCE_FREQUENCIES)),
        }
    return None


def generate_synthetic_records(
    n_candidates: int, random_seed: Optional[int] = None, answer_rate: float = 0.9
) -> List[Dict[str, Any]]:
    """
    Generate a pool of stored-format candidate records.

    Args:
        n_candidates: Pool size
        random_seed: Random seed for reproducibility
        answer_rate: Probability that each scored question is answered

    Returns:
        List of raw candidate records
    """
    rng = np.random.RandomState(random_seed)
    records = []

    for i in range(n_candidates):
        age = int(rng.randint(18, 30))
        responses: Dict[str, Any] = {
            "q4": {"answer": age, "preference": {"min": age - 4, "max": age + 5}},
        }
        for question_id, spec in DEFAULT_CATALOG.items():
            if not spec.is_scored or spec.kind is QuestionKind.FREE_TEXT:
                continue
            if rng.rand() > answer_rate:
                continue
            responses[question_id] = {
                "answer": _answer_for(rng, spec),
                "preference": _preference_for(rng, spec),
                "importance": _pick(rng, IMPORTANCE_LEVELS),
                "isDealbreaker": bool(rng.rand() < DEALBREAKER_RATE),
            }

        records.append({
            "id": f"user_{i:04d}",
            "gender": _pick(rng, GENDERS),
            "interestedInGenders": _pick(rng, GENDER_PREFERENCES),
            "campus": _pick(rng, CAMPUSES),
            "okMatchingDifferentCampus": bool(rng.rand() < 0.7),
            "responses": responses,
        })

    logger.info(f"Created synthetic pool: {n_candidates} candidates (seed={random_seed})")
    return records
