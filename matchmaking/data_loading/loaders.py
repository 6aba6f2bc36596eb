"""
Data loading functions for the matching engine.

This module loads stored candidate records (JSON) and precomputed
free-text similarities (CSV). No normalization is done here; that's
handled by the preprocessing module.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from ..interfaces import StaticTextSimilarity

logger = logging.getLogger(__name__)

TEXT_SIMILARITY_COLUMNS = ["question_id", "a_id", "b_id", "similarity"]


def load_candidate_records(filepath: str) -> List[Dict[str, Any]]:
    """
    Load stored candidate records from a JSON file.

    The file holds either a list of records or an object with a
    "candidates" list. Each record looks like:
        {
            "id": "u1",
            "gender": "woman",
            "interestedInGenders": ["men"],
            "campus": "North",
            "okMatchingDifferentCampus": true,
            "responses": {"q7": {"answer": 3, "preference": "similar",
                                 "importance": "important"}, ...}
        }

    Args:
        filepath: Path to the JSON file

    Returns:
        List of raw candidate records

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file holds no records
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Candidate file not found: {filepath}")

    logger.info(f"Loading candidates from {filepath}")
    with open(filepath, "r") as f:
        data = json.load(f)

    records = data.get("candidates", []) if isinstance(data, dict) else data
    if not isinstance(records, list) or not records:
        raise ValueError(f"Candidate file has no records: {filepath}")

    logger.info(f"Loaded {len(records)} candidate records")
    return records


def load_text_similarities(filepath: str) -> StaticTextSimilarity:
    """
    Load precomputed free-text similarities from CSV.

    Expected columns: question_id, a_id, b_id, similarity.

    Args:
        filepath: Path to the CSV file

    Returns:
        StaticTextSimilarity provider

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If required columns are missing
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Text similarity file not found: {filepath}")

    logger.info(f"Loading text similarities from {filepath}")
    df = pd.read_csv(filepath, dtype={"question_id": str, "a_id": str, "b_id": str})

    missing = set(TEXT_SIMILARITY_COLUMNS) - set(df.columns)
    if missing:
        raise ValueError(f"Text similarity file missing columns: {sorted(missing)}")

    df = df.dropna(subset=TEXT_SIMILARITY_COLUMNS)
    provider = StaticTextSimilarity.from_rows(
        df[TEXT_SIMILARITY_COLUMNS].itertuples(index=False, name=None)
    )
    logger.info(f"Loaded {len(provider.values)} text similarities")
    return provider
