"""
Similarity dispatch.

Maps each question kind to its similarity function through a single
table, and computes every per-question similarity for a pair.

Missing data rules:
- Answered by neither side: the question is not part of the pair
- Answered by one side only: similarity 0
- Free text: supplied by the text-similarity collaborator; when it has no
  value (or fails) the question is left out of the pair
"""

import logging
from typing import Callable, Dict, Optional

from ..errors import ConfigurationError, MissingDataError
from ..questions.catalog import QuestionKind, QuestionSpec, QuestionTable
from ..schema import Candidate, QuestionResponse
from .functions import (
    categorical_similarity,
    different_preference_similarity,
    directional_similarity,
    multi_select_similarity,
    ordinal_similarity,
    single_vs_multi_similarity,
    substance_use_similarity,
)
from .special_cases import (
    conflict_resolution_similarity,
    love_language_similarity,
    sleep_schedule_similarity,
)

logger = logging.getLogger(__name__)

SimilarityFunction = Callable[[QuestionSpec, QuestionResponse, QuestionResponse], float]

SIMILARITY_FUNCTIONS: Dict[QuestionKind, SimilarityFunction] = {
    QuestionKind.CATEGORICAL: categorical_similarity,
    QuestionKind.ORDINAL: ordinal_similarity,
    QuestionKind.MULTI_SELECT: multi_select_similarity,
    QuestionKind.SINGLE_VS_MULTI: single_vs_multi_similarity,
    QuestionKind.SUBSTANCE_USE: substance_use_similarity,
    QuestionKind.DIRECTIONAL: directional_similarity,
    QuestionKind.DIFFERENT: different_preference_similarity,
    QuestionKind.LOVE_LANGUAGES: love_language_similarity,
    QuestionKind.CONFLICT_RESOLUTION: conflict_resolution_similarity,
    QuestionKind.SLEEP_SCHEDULE: sleep_schedule_similarity,
}


def _clamp(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def require_answers(
    question_id: str, a: Optional[QuestionResponse], b: Optional[QuestionResponse]
) -> None:
    """
    Raises:
        MissingDataError: If either side has no answer
    """
    if a is None or not a.is_answered or b is None or not b.is_answered:
        raise MissingDataError(question_id)


def question_similarity(
    spec: QuestionSpec, a: Optional[QuestionResponse], b: Optional[QuestionResponse]
) -> float:
    """
    Similarity of two responses to one question, in [0, 1].

    Raises:
        ConfigurationError: If the question kind has no similarity function
    """
    function = SIMILARITY_FUNCTIONS.get(spec.kind)
    if function is None:
        raise ConfigurationError(f"No similarity function for {spec.id} ({spec.kind.value})")
    try:
        require_answers(spec.id, a, b)
    except MissingDataError:
        return 0.0
    return _clamp(function(spec, a, b))


def text_similarity_for(provider, question_id: str, a_id: str, b_id: str) -> Optional[float]:
    """
    Ask the text-similarity collaborator for a value.

    Ids are passed in sorted order so the value is symmetric. Collaborator
    failures are logged and read as "no value".
    """
    if provider is None:
        return None
    first, second = sorted((a_id, b_id))
    try:
        value = provider.similarity(question_id, first, second)
    except Exception as e:
        logger.warning(f"Text similarity failed for {question_id} ({first}, {second}): {e}")
        return None
    if value is None:
        return None
    return _clamp(value)


def calculate_similarities(
    a: Candidate,
    b: Candidate,
    table: QuestionTable,
    text_similarity=None,
) -> Dict[str, float]:
    """
    Compute every per-question similarity for a pair.

    Args:
        a: First candidate
        b: Second candidate
        table: Resolved question table
        text_similarity: Optional TextSimilarityProvider

    Returns:
        Question id -> similarity in [0, 1], in natural question order
    """
    similarities: Dict[str, float] = {}
    for question_id in table.scored_ids:
        spec = table.spec(question_id)
        if spec.kind is QuestionKind.FREE_TEXT:
            value = text_similarity_for(text_similarity, question_id, a.id, b.id)
            if value is not None:
                similarities[question_id] = value
            continue

        a_response = a.response(question_id)
        b_response = b.response(question_id)
        if a_response is None and b_response is None:
            continue
        similarities[question_id] = question_similarity(spec, a_response, b_response)
    return similarities
