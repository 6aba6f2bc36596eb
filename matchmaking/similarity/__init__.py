"""Per-question similarity functions and their dispatch table."""

from .dispatch import (
    SIMILARITY_FUNCTIONS,
    question_similarity,
    calculate_similarities,
    text_similarity_for,
)
from .functions import jaccard, substance_base_similarity
from .special_cases import CONFLICT_COMPATIBILITY, conflict_matrix_score, sleep_schedule_score

__all__ = [
    "SIMILARITY_FUNCTIONS",
    "question_similarity",
    "calculate_similarities",
    "text_similarity_for",
    "jaccard",
    "substance_base_similarity",
    "CONFLICT_COMPATIBILITY",
    "conflict_matrix_score",
    "sleep_schedule_score",
]
