"""Questionnaire catalog and its resolution against section membership."""

from .catalog import (
    QuestionKind,
    AnswerShape,
    QuestionSpec,
    QuestionTable,
    DEFAULT_CATALOG,
    resolve_question_table,
    question_sort_key,
)

__all__ = [
    "QuestionKind",
    "AnswerShape",
    "QuestionSpec",
    "QuestionTable",
    "DEFAULT_CATALOG",
    "resolve_question_table",
    "question_sort_key",
]
