"""Run diagnostics: per-phase counts, score distributions and tabular exports."""

from .diagnostics import (
    ScoreStatistics,
    PipelineDiagnostics,
    HISTOGRAM_LABELS,
    compute_score_histogram,
    compute_score_statistics,
    build_diagnostics,
    pair_scores_frame,
    unmatched_frame,
)

__all__ = [
    "ScoreStatistics",
    "PipelineDiagnostics",
    "HISTOGRAM_LABELS",
    "compute_score_histogram",
    "compute_score_statistics",
    "build_diagnostics",
    "pair_scores_frame",
    "unmatched_frame",
]
