"""
Error types raised by the matching engine.

Four categories with different handling:
- ConfigurationError: fatal, raised at startup before any pair is scored
- DataShapeError: recoverable per candidate, the normalizer drops the answer
- MissingDataError: expected per pair, the similarity dispatcher scores it 0
- GraphInconsistencyError: fatal, the run rejects its own matching output
"""


class MatchingError(Exception):
    """Base class for all matching engine errors."""


class ConfigurationError(MatchingError):
    """Invalid weights, thresholds or an unmapped question type."""


class DataShapeError(MatchingError):
    """A stored response does not match any known encoding."""

    def __init__(self, question_id: str, message: str):
        self.question_id = question_id
        super().__init__(f"{question_id}: {message}")


class MissingDataError(MatchingError):
    """One side of a pair did not answer a question."""

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"{question_id}: answer missing")


class GraphInconsistencyError(MatchingError):
    """The matching output violates a structural postcondition."""
