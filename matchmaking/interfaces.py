"""
Collaborator interfaces.

The engine depends on three collaborators only through these protocols:

- TextSimilarityProvider: similarity of free-text answers (e.g. embeddings)
- MatchStore: persistence of a finished batch
- ReviewQueue: hand-off of candidates to human reviewers

StaticTextSimilarity and JsonMatchStore are the in-process implementations
used by the batch CLI and the tests.
"""

import json
import logging
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Protocol, Tuple

from .schema import MatchingResult, to_serializable

logger = logging.getLogger(__name__)


class TextSimilarityProvider(Protocol):
    def similarity(self, question_id: str, a_id: str, b_id: str) -> Optional[float]:
        """Similarity in [0, 1] of two free-text answers, None when unknown."""
        ...


class MatchStore(Protocol):
    def save_batch(self, batch_id: str, result: MatchingResult) -> None:
        ...


class ReviewQueue(Protocol):
    def submit(self, user_id: str, partners: List[Tuple[str, float]]) -> None:
        ...


class StaticTextSimilarity:
    """
    Text similarity looked up from precomputed values.

    Attributes:
        values: (question id, frozenset of both ids) -> similarity
    """

    def __init__(self, values: Optional[Mapping[Tuple[str, FrozenSet[str]], float]] = None):
        self.values: Dict[Tuple[str, FrozenSet[str]], float] = dict(values or {})

    def add(self, question_id: str, a_id: str, b_id: str, value: float) -> None:
        self.values[(question_id, frozenset((a_id, b_id)))] = float(value)

    def similarity(self, question_id: str, a_id: str, b_id: str) -> Optional[float]:
        return self.values.get((question_id, frozenset((a_id, b_id))))

    @classmethod
    def from_rows(cls, rows: Iterable[Tuple[str, str, str, float]]) -> "StaticTextSimilarity":
        provider = cls()
        for question_id, a_id, b_id, value in rows:
            provider.add(question_id, a_id, b_id, value)
        return provider


class JsonMatchStore:
    """
    Stores each batch as files in its own directory.

    Layout:
        <root>/<batch_id>/result.json
        <root>/<batch_id>/diagnostics.json
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def batch_dir(self, batch_id: str) -> Path:
        return self.root / batch_id

    def save_batch(self, batch_id: str, result: MatchingResult) -> None:
        batch_dir = self.batch_dir(batch_id)
        batch_dir.mkdir(parents=True, exist_ok=True)

        with open(batch_dir / "result.json", "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        result.diagnostics.save(str(batch_dir / "diagnostics.json"))
        logger.info(f"Saved batch {batch_id} to {batch_dir}")

    def load_matches(self, batch_id: str) -> List[Dict[str, object]]:
        with open(self.batch_dir(batch_id) / "result.json", "r") as f:
            return json.load(f)["matches"]


class ListReviewQueue:
    """Collects review submissions in memory."""

    def __init__(self):
        self.submissions: List[Tuple[str, List[Tuple[str, float]]]] = []

    def submit(self, user_id: str, partners: List[Tuple[str, float]]) -> None:
        self.submissions.append((user_id, list(partners)))

    def to_records(self) -> List[Dict[str, object]]:
        return to_serializable(
            [{"user_id": user_id, "partners": partners} for user_id, partners in self.submissions]
        )
