"""
Pipeline diagnostics.

Per-phase counts and score distributions for one matching run:

- Phase 1 (hard filters): filtered pairs with their reasons
- Phases 2-6 (scoring): number of scored pairs and mean pair score
- Phase 7 (eligibility): eligible pairs and which gate failed
- Phase 8 (matching): matches and unmatched candidates

Score histograms use fixed buckets 0-20, 20-40, 40-60, 60-80, 80-100; a
score of exactly 100 falls in the last bucket. Execution time is reported
but excluded from equality, so two runs over the same input compare equal.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..schema import FilteredPair, MatchPair, PairScore, UnmatchedRecord, to_serializable
from ..scoring.eligibility import EligibilityReport

logger = logging.getLogger(__name__)

HISTOGRAM_EDGES = (0, 20, 40, 60, 80, 100)
HISTOGRAM_LABELS = ("0-20", "20-40", "40-60", "60-80", "80-100")


@dataclass(frozen=True)
class ScoreStatistics:
    """Statistics of a set of scores."""
    count: int
    mean: float
    median: float
    min: float
    max: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": int(self.count),
            "mean": float(self.mean),
            "median": float(self.median),
            "min": float(self.min),
            "max": float(self.max),
        }


@dataclass(frozen=True)
class PipelineDiagnostics:
    """
    Diagnostics for one matching run.

    Attributes:
        total_candidates: Candidates in the batch
        filtered_pairs: Pairs removed by hard filters
        filter_reasons: Hard filter reason -> pair count
        pair_scores_calculated: Pairs that reached scoring
        mean_pair_score: Mean pair score over scored pairs
        eligible_pairs: Pairs that passed eligibility
        failed_absolute: Pairs failing the absolute floor
        failed_relative_a: Pairs failing side A's relative floor
        failed_relative_b: Pairs failing side B's relative floor
        perfectionists: Candidates with scored pairs but no eligible pair
        isolated: Candidates with no scored pair at all
        matches_created: Final match count
        unmatched_count: Unmatched candidates
        unmatched_reasons: Unmatched reason -> candidate count
        score_distribution: Histogram of pair scores by bucket label
        pair_score_stats: Statistics over every scored pair
        match_score_stats: Statistics over final matches
        execution_time_ms: Wall-clock time of the run
    """
    total_candidates: int
    filtered_pairs: int
    filter_reasons: Dict[str, int]
    pair_scores_calculated: int
    mean_pair_score: float
    eligible_pairs: int
    failed_absolute: int
    failed_relative_a: int
    failed_relative_b: int
    perfectionists: Tuple[str, ...]
    isolated: Tuple[str, ...]
    matches_created: int
    unmatched_count: int
    unmatched_reasons: Dict[str, int]
    score_distribution: Dict[str, int]
    pair_score_stats: ScoreStatistics
    match_score_stats: ScoreStatistics
    execution_time_ms: float = field(default=0.0, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_candidates": self.total_candidates,
            "phase1": {
                "filtered_pairs": self.filtered_pairs,
                "reasons": dict(self.filter_reasons),
            },
            "phase2to6": {
                "pair_scores_calculated": self.pair_scores_calculated,
                "mean_pair_score": float(self.mean_pair_score),
                "stats": self.pair_score_stats.to_dict(),
            },
            "phase7": {
                "eligible_pairs": self.eligible_pairs,
                "failed_absolute": self.failed_absolute,
                "failed_relative_a": self.failed_relative_a,
                "failed_relative_b": self.failed_relative_b,
                "perfectionists": list(self.perfectionists),
                "isolated": list(self.isolated),
            },
            "phase8": {
                "matches_created": self.matches_created,
                "unmatched_count": self.unmatched_count,
                "unmatched_reasons": dict(self.unmatched_reasons),
                "stats": self.match_score_stats.to_dict(),
            },
            "score_distribution": dict(self.score_distribution),
            "execution_time_ms": float(self.execution_time_ms),
        }

    def save(self, filepath: str) -> None:
        """Save diagnostics to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved diagnostics to {filepath}")

    def summary(self) -> str:
        """Generate text summary of the run."""
        lines = [
            "Matching Run Diagnostics",
            "=" * 50,
            f"Candidates: {self.total_candidates}",
            "",
            "Phase 1 (hard filters):",
            f"  Filtered pairs: {self.filtered_pairs}",
        ]
        for reason, count in sorted(self.filter_reasons.items()):
            lines.append(f"    {reason}: {count}")
        lines.extend([
            "",
            "Phases 2-6 (scoring):",
            f"  Pairs scored: {self.pair_scores_calculated}",
            f"  Mean pair score: {self.mean_pair_score:.2f}",
            "",
            "Phase 7 (eligibility):",
            f"  Eligible pairs: {self.eligible_pairs}",
            f"  Failed absolute: {self.failed_absolute}",
            f"  Failed relative A: {self.failed_relative_a}",
            f"  Failed relative B: {self.failed_relative_b}",
            f"  Perfectionists: {len(self.perfectionists)}",
            "",
            "Phase 8 (matching):",
            f"  Matches: {self.matches_created}",
            f"  Unmatched: {self.unmatched_count}",
            f"  Match score mean: {self.match_score_stats.mean:.2f} "
            f"(median {self.match_score_stats.median:.2f}, "
            f"min {self.match_score_stats.min:.2f}, max {self.match_score_stats.max:.2f})",
            "",
            "Score distribution:",
        ])
        for label, count in self.score_distribution.items():
            lines.append(f"  {label}: {count}")
        lines.append(f"Execution time: {self.execution_time_ms:.0f} ms")
        return "\n".join(lines)


def compute_score_histogram(scores: Sequence[float]) -> Dict[str, int]:
    """Count scores per fixed bucket; 100 counts in the last bucket."""
    counts, _ = np.histogram(np.asarray(scores, dtype=float), bins=HISTOGRAM_EDGES)
    return {label: int(count) for label, count in zip(HISTOGRAM_LABELS, counts)}


def compute_score_statistics(scores: Sequence[float]) -> ScoreStatistics:
    if len(scores) == 0:
        return ScoreStatistics(count=0, mean=0.0, median=0.0, min=0.0, max=0.0)
    values = np.asarray(scores, dtype=float)
    return ScoreStatistics(
        count=len(values),
        mean=float(np.mean(values)),
        median=float(np.median(values)),
        min=float(np.min(values)),
        max=float(np.max(values)),
    )


def build_diagnostics(
    candidate_ids: Sequence[str],
    filtered_pairs: Sequence[FilteredPair],
    pair_scores: Sequence[PairScore],
    eligibility: EligibilityReport,
    matches: Sequence[MatchPair],
    unmatched: Sequence[UnmatchedRecord],
    execution_time_ms: float = 0.0,
) -> PipelineDiagnostics:
    """Assemble PipelineDiagnostics from the outputs of every phase."""
    scores = [p.pair_score for p in pair_scores]
    scored_ids = {user_id for p in pair_scores for user_id in (p.a_id, p.b_id)}

    return PipelineDiagnostics(
        total_candidates=len(candidate_ids),
        filtered_pairs=len(filtered_pairs),
        filter_reasons=dict(sorted(Counter(f.result.reason for f in filtered_pairs).items())),
        pair_scores_calculated=len(pair_scores),
        mean_pair_score=float(np.mean(scores)) if scores else 0.0,
        eligible_pairs=len(eligibility.eligible),
        failed_absolute=eligibility.failed_absolute,
        failed_relative_a=eligibility.failed_relative_a,
        failed_relative_b=eligibility.failed_relative_b,
        perfectionists=eligibility.perfectionists,
        isolated=tuple(sorted(set(candidate_ids) - scored_ids)),
        matches_created=len(matches),
        unmatched_count=len(unmatched),
        unmatched_reasons=dict(sorted(Counter(u.reason.value for u in unmatched).items())),
        score_distribution=compute_score_histogram(scores),
        pair_score_stats=compute_score_statistics(scores),
        match_score_stats=compute_score_statistics([m.score for m in matches]),
        execution_time_ms=execution_time_ms,
    )


def pair_scores_frame(
    pair_scores: Sequence[PairScore], eligibility: Optional[EligibilityReport] = None
) -> pd.DataFrame:
    """
    Tabulate scored pairs, one row per pair.

    Columns: a_id, b_id, score_a_to_b, score_b_to_a, pair_score,
    mutuality_penalty, question_count, and the eligibility gates when a
    report is given.
    """
    rows: List[Dict[str, Any]] = []
    for pair in pair_scores:
        row = {
            "a_id": pair.a_id,
            "b_id": pair.b_id,
            "score_a_to_b": pair.score_a_to_b,
            "score_b_to_a": pair.score_b_to_a,
            "pair_score": pair.pair_score,
            "mutuality_penalty": pair.diagnostics.mutuality_penalty,
            "question_count": pair.diagnostics.question_count,
            "low_score_questions": ",".join(
                g.question_id for g in pair.diagnostics.low_score_questions
            ),
        }
        if eligibility is not None:
            result = eligibility.result_for(pair.a_id, pair.b_id)
            row.update({
                "eligible": result.eligible,
                "passed_absolute": result.passed_absolute,
                "passed_relative_a": result.passed_relative_a,
                "passed_relative_b": result.passed_relative_b,
            })
        rows.append(row)

    columns = [
        "a_id", "b_id", "score_a_to_b", "score_b_to_a", "pair_score",
        "mutuality_penalty", "question_count", "low_score_questions",
    ]
    if eligibility is not None:
        columns += ["eligible", "passed_absolute", "passed_relative_a", "passed_relative_b"]
    return pd.DataFrame(rows, columns=columns)


def unmatched_frame(unmatched: Sequence[UnmatchedRecord]) -> pd.DataFrame:
    """Tabulate unmatched candidates with their reason and best possible partner."""
    records = [to_serializable(u) for u in unmatched]
    for record in records:
        record["top_candidates"] = len(record["top_candidates"])
    return pd.DataFrame(
        records,
        columns=[
            "user_id", "reason", "message", "best_possible_score",
            "best_possible_match_id", "top_candidates",
        ],
    )
