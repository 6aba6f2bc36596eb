"""
Main runner for the matching engine.

This is the single entrypoint for running one matching batch.

Usage:
    python -m matchmaking.run --config configs/config.yaml --candidates pool.json
    python -m matchmaking.run --config configs/config.yaml --synthetic 200 --seed 7

The pipeline performs the following steps:
1. Validate configuration and resolve the question table
2. Enumerate unordered candidate pairs
3. Hard filters, similarities, directional and pair scores (parallel map)
4. Eligibility gates over the whole batch
5. Global maximum-weight matching
6. Diagnostics and artifacts
"""

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from joblib import Parallel, delayed

from .configs import load_matching_config, DEFAULT_CONFIG, MatchingConfig
from .errors import ConfigurationError
from .filters import check_hard_filters
from .questions import QuestionTable, resolve_question_table
from .schema import Candidate, FilteredPair, HardFilterResult, MatchingResult, PairScore
from .scoring import filter_eligible, score_pair
from .matching import run_global_matching, top_matches
from .evaluation import build_diagnostics, pair_scores_frame, unmatched_frame

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging level from config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


def evaluate_pair(
    a: Candidate,
    b: Candidate,
    table: QuestionTable,
    config: MatchingConfig,
    text_similarity=None,
) -> Tuple[HardFilterResult, Optional[PairScore]]:
    """
    Hard-filter and, if it passes, score one pair.

    Pure function of its arguments, so pairs can be evaluated in any
    order and on any worker.
    """
    result = check_hard_filters(a, b, table, config)
    if not result.passed:
        return result, None
    return result, score_pair(a, b, table, config, text_similarity)


def enumerate_pairs(candidates: Sequence[Candidate]) -> List[Tuple[Candidate, Candidate]]:
    """All unordered pairs, smaller id first, in sorted order."""
    ordered = sorted(candidates, key=lambda c: c.id)
    return [
        (ordered[i], ordered[j])
        for i in range(len(ordered))
        for j in range(i + 1, len(ordered))
    ]


def run_matching_pipeline(
    candidates: Sequence[Candidate],
    config: MatchingConfig = DEFAULT_CONFIG,
    text_similarity=None,
    table: Optional[QuestionTable] = None,
) -> MatchingResult:
    """
    Run one matching batch over a candidate pool.

    Args:
        candidates: Normalized candidates
        config: Matching configuration
        text_similarity: Optional TextSimilarityProvider for free-text questions
        table: Resolved question table (resolved from config when omitted)

    Returns:
        MatchingResult

    Raises:
        ConfigurationError: If the configuration is invalid or the batch is too large
        ValueError: If candidate ids are not unique
        GraphInconsistencyError: If the matching violates a postcondition
    """
    start = time.perf_counter()
    config.validate()
    if table is None:
        table = resolve_question_table(config)

    candidate_ids = [c.id for c in candidates]
    if len(set(candidate_ids)) != len(candidate_ids):
        raise ValueError("Candidate ids must be unique")
    if len(candidates) > config.max_batch_size:
        raise ConfigurationError(
            f"Batch of {len(candidates)} candidates exceeds max_batch_size={config.max_batch_size}"
        )

    logger.info("=" * 60)
    logger.info(f"MATCHING RUN: {len(candidates)} candidates")
    logger.info("=" * 60)

    # =========================================================================
    # Phases 1-6: hard filters and scoring
    # =========================================================================
    pairs = enumerate_pairs(candidates)
    logger.info(f"Evaluating {len(pairs)} pairs (n_jobs={config.n_jobs})")

    outcomes = Parallel(n_jobs=config.n_jobs, backend=config.backend)(
        delayed(evaluate_pair)(a, b, table, config, text_similarity) for a, b in pairs
    )

    filtered: List[FilteredPair] = []
    scored: List[PairScore] = []
    for (a, b), (result, pair) in zip(pairs, outcomes):
        if pair is None:
            filtered.append(FilteredPair(a_id=a.id, b_id=b.id, result=result))
        else:
            scored.append(pair)
    logger.info(f"Hard filters removed {len(filtered)} pairs, scored {len(scored)}")

    # =========================================================================
    # Phase 7: eligibility (needs every pair scored)
    # =========================================================================
    eligibility = filter_eligible(scored, config)

    # =========================================================================
    # Phase 8: global matching
    # =========================================================================
    outcome = run_global_matching(candidate_ids, eligibility, scored, filtered, config)

    elapsed_ms = (time.perf_counter() - start) * 1000
    diagnostics = build_diagnostics(
        candidate_ids,
        filtered,
        scored,
        eligibility,
        outcome.matches,
        outcome.unmatched,
        execution_time_ms=elapsed_ms,
    )
    logger.info(f"Matching run complete in {elapsed_ms:.0f} ms")

    return MatchingResult(
        matches=outcome.matches,
        unmatched=outcome.unmatched,
        eligible_pairs=eligibility.eligible,
        pair_scores=tuple(scored),
        filtered_pairs=tuple(filtered),
        eligibility=eligibility,
        diagnostics=diagnostics,
    )


def run_batch(
    config_path: str,
    candidates_path: Optional[str] = None,
    synthetic: Optional[int] = None,
    seed: Optional[int] = None,
    text_similarity_path: Optional[str] = None,
    output_dir: Optional[str] = None,
    batch_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Load inputs, run one batch and save its artifacts.

    Args:
        config_path: Path to the configuration YAML file
        candidates_path: Path to stored candidate records (JSON)
        synthetic: Generate a synthetic pool of this size instead
        seed: Random seed for the synthetic pool
        text_similarity_path: Optional CSV of free-text similarities
        output_dir: Artifact root directory (overrides config)
        batch_id: Batch directory name (defaults to a timestamp)

    Returns:
        Dictionary with success flag, result and artifact directory
    """
    from .configs import load_config
    from .data_loading import (
        generate_synthetic_records,
        load_candidate_records,
        load_text_similarities,
    )
    from .interfaces import JsonMatchStore, ListReviewQueue
    from .preprocessing import ResponseNormalizer

    raw_config = load_config(config_path)
    setup_logging(raw_config.get("global", {}).get("log_level", "INFO"))
    config = load_matching_config(config_path)
    table = resolve_question_table(config)

    # =========================================================================
    # Load and normalize candidates
    # =========================================================================
    logger.info("=" * 60)
    logger.info("Loading candidates")
    logger.info("=" * 60)

    if synthetic is not None:
        records = generate_synthetic_records(synthetic, random_seed=seed)
    elif candidates_path is not None:
        records = load_candidate_records(candidates_path)
    else:
        raise ValueError("Either a candidates file or a synthetic pool size is required")

    normalizer = ResponseNormalizer(table, config)
    candidates, rejected = normalizer.normalize_pool(records)

    text_similarity = None
    if text_similarity_path is not None:
        text_similarity = load_text_similarities(text_similarity_path)

    result = run_matching_pipeline(candidates, config, text_similarity=text_similarity, table=table)

    # =========================================================================
    # Save artifacts
    # =========================================================================
    effective_output_dir = output_dir or raw_config.get("global", {}).get("output_dir", "artifacts")
    batch_id = batch_id or datetime.now().strftime("batch_%Y%m%d_%H%M%S")
    store = JsonMatchStore(effective_output_dir)
    store.save_batch(batch_id, result)

    batch_dir = store.batch_dir(batch_id)
    pair_scores_frame(result.pair_scores, result.eligibility).to_csv(
        batch_dir / "pair_scores.csv", index=False
    )
    unmatched_frame(result.unmatched).to_csv(batch_dir / "unmatched.csv", index=False)
    config.save(str(batch_dir / "config.yaml"))

    review_queue = ListReviewQueue()
    for record in result.unmatched:
        partners = top_matches(record.user_id, result.eligible_pairs, limit=config.top_k)
        if partners:
            review_queue.submit(record.user_id, partners)
    with open(batch_dir / "review_queue.json", "w") as f:
        json.dump(review_queue.to_records(), f, indent=2)
    if rejected:
        logger.warning(f"{len(rejected)} candidates were rejected during normalization")

    logger.info("\n" + result.diagnostics.summary())
    logger.info(f"Artifacts saved to {batch_dir}")

    return {
        "success": True,
        "result": result,
        "rejected": rejected,
        "review_queue": review_queue.to_records(),
        "batch_dir": str(batch_dir),
    }


def main():
    """Main entry point for a matching batch."""
    parser = argparse.ArgumentParser(description="Run one compatibility matching batch")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--candidates",
        type=str,
        default=None,
        help="Path to stored candidate records (JSON)"
    )
    parser.add_argument(
        "--synthetic",
        type=int,
        default=None,
        help="Generate a synthetic pool of this size instead of loading candidates"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the synthetic pool"
    )
    parser.add_argument(
        "--text-similarities",
        type=str,
        default=None,
        help="CSV of precomputed free-text similarities"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for artifacts (overrides config)"
    )
    parser.add_argument(
        "--batch-id",
        type=str,
        default=None,
        help="Name of the batch directory (defaults to a timestamp)"
    )

    args = parser.parse_args()

    try:
        outcome = run_batch(
            args.config,
            candidates_path=args.candidates,
            synthetic=args.synthetic,
            seed=args.seed,
            text_similarity_path=args.text_similarities,
            output_dir=args.output_dir,
            batch_id=args.batch_id,
        )
        if outcome["success"]:
            logger.info("\nMatching batch completed successfully!")
            return 0
        else:
            logger.error("\nMatching batch failed!")
            return 1
    except Exception as e:
        logger.exception(f"Matching batch failed with error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
