"""Data loading: stored candidate records, text similarities and synthetic pools."""

from .loaders import load_candidate_records, load_text_similarities
from .synthetic import generate_synthetic_records

__all__ = [
    "load_candidate_records",
    "load_text_similarities",
    "generate_synthetic_records",
]
