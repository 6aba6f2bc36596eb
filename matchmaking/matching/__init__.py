"""Global maximum-weight matching and unmatched diagnostics."""

from .global_matching import (
    GlobalMatchingOutcome,
    edge_weight,
    build_matching_graph,
    validate_matching,
    find_maximum_weight_matching,
    classify_unmatched,
    run_global_matching,
    top_matches,
)

__all__ = [
    "GlobalMatchingOutcome",
    "edge_weight",
    "build_matching_graph",
    "validate_matching",
    "find_maximum_weight_matching",
    "classify_unmatched",
    "run_global_matching",
    "top_matches",
]
