"""
Global matching engine.

Builds a graph with one node per candidate and one edge per eligible pair,
weighted by round(pair_score * weight_scale), and finds the maximum-weight
matching with networkx (Edmonds' blossom algorithm). Cardinality is not
forced: a higher total weight wins over more matched pairs.

Determinism:
- Integer edge weights, so float noise cannot flip a comparison
- Nodes and edges are inserted in sorted id order
- Output pairs are ordered (smaller id first) and sorted

Every candidate left unmatched gets exactly one reason:
- no_eligible_pairs: nothing survived the hard filters and eligibility gates
- outcompeted: the best eligible partner was matched to someone else
- odd_parity: the best eligible partner is unmatched too
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from ..configs.settings import MatchingConfig
from ..errors import GraphInconsistencyError
from ..schema import (
    CandidatePartner,
    EligiblePair,
    FilteredPair,
    MatchPair,
    PairScore,
    UnmatchedReason,
    UnmatchedRecord,
    WhyNot,
)
from ..scoring.eligibility import EligibilityReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalMatchingOutcome:
    matches: Tuple[MatchPair, ...]
    unmatched: Tuple[UnmatchedRecord, ...]


def edge_weight(pair_score: float, weight_scale: int) -> int:
    return int(round(pair_score * weight_scale))


def build_matching_graph(
    candidate_ids: Iterable[str], eligible_pairs: Iterable[EligiblePair], config: MatchingConfig
) -> nx.Graph:
    """
    Build the matching graph.

    Args:
        candidate_ids: Every candidate in the batch
        eligible_pairs: Pairs that passed eligibility
        config: Matching configuration (weight_scale)

    Returns:
        Undirected graph with integer "weight" and the PairScore on each edge
    """
    graph = nx.Graph()
    graph.add_nodes_from(sorted(candidate_ids))
    for eligible in sorted(eligible_pairs, key=lambda e: (e.a_id, e.b_id)):
        graph.add_edge(
            eligible.a_id,
            eligible.b_id,
            weight=edge_weight(eligible.pair_score, config.weight_scale),
            pair=eligible.pair,
        )
    return graph


def validate_matching(matches: Sequence[MatchPair]) -> None:
    """
    Check the structural postconditions of a matching.

    Raises:
        GraphInconsistencyError: On a repeated id, a self-pair, or a score
            outside [0, 100]
    """
    seen = set()
    for match in matches:
        if match.a_id == match.b_id:
            raise GraphInconsistencyError(f"Self-pair in matching: {match.a_id}")
        for user_id in (match.a_id, match.b_id):
            if user_id in seen:
                raise GraphInconsistencyError(f"{user_id} appears in more than one match")
            seen.add(user_id)
        if not 0 <= match.score <= 100:
            raise GraphInconsistencyError(
                f"Score {match.score} for ({match.a_id}, {match.b_id}) is outside [0, 100]"
            )


def find_maximum_weight_matching(graph: nx.Graph) -> List[MatchPair]:
    """Run the blossom algorithm and return ordered, sorted match pairs."""
    matching = nx.max_weight_matching(graph, maxcardinality=False, weight="weight")
    matches = []
    for u, v in matching:
        a_id, b_id = sorted((u, v))
        matches.append(MatchPair(a_id=a_id, b_id=b_id, pair_score=graph.edges[a_id, b_id]["pair"]))
    matches.sort(key=lambda m: (m.a_id, m.b_id))
    return matches


def _index_by_user(items, id_getter) -> Dict[str, list]:
    index: Dict[str, list] = {}
    for item in items:
        for user_id in id_getter(item):
            index.setdefault(user_id, []).append(item)
    return index


def classify_unmatched(
    user_id: str,
    partner_of: Dict[str, str],
    eligibility: EligibilityReport,
    pairs_by_user: Dict[str, List[PairScore]],
    filtered_by_user: Dict[str, List[FilteredPair]],
    top_k: int,
) -> UnmatchedRecord:
    """
    Assign one unmatched reason and list the best partners with why-not.

    Args:
        user_id: Unmatched candidate
        partner_of: Matched candidate id -> partner id
        eligibility: Eligibility report for the batch
        pairs_by_user: Candidate id -> scored pairs involving them
        filtered_by_user: Candidate id -> hard-filtered pairs involving them
        top_k: Maximum number of partners listed

    Returns:
        UnmatchedRecord
    """
    scored = sorted(
        pairs_by_user.get(user_id, []),
        key=lambda p: (-p.pair_score, p.partner_of(user_id)),
    )
    eligible = [p for p in scored if eligibility.result_for(p.a_id, p.b_id).eligible]

    best: Optional[PairScore] = eligible[0] if eligible else (scored[0] if scored else None)
    best_score = best.pair_score if best else None
    best_id = best.partner_of(user_id) if best else None

    if not eligible:
        reason = UnmatchedReason.NO_ELIGIBLE_PAIRS
        if scored:
            message = "No eligible pairs: every scored pair failed the eligibility gates"
        else:
            message = "No eligible pairs: every pair failed a hard filter"
    elif best_id in partner_of:
        reason = UnmatchedReason.OUTCOMPETED
        message = f"Best match {best_id} was paired with {partner_of[best_id]}"
    else:
        reason = UnmatchedReason.ODD_PARITY
        message = f"Best match {best_id} is also unmatched"

    top: List[CandidatePartner] = []
    for pair in scored:
        partner_id = pair.partner_of(user_id)
        result = eligibility.result_for(pair.a_id, pair.b_id)
        if not result.eligible:
            why_not, detail = WhyNot.FAILED_ELIGIBILITY, "; ".join(result.failure_reasons)
        elif partner_id in partner_of:
            why_not, detail = WhyNot.OUTCOMPETED, f"matched with {partner_of[partner_id]}"
        else:
            why_not, detail = WhyNot.PARTNER_UNMATCHED, None
        top.append(CandidatePartner(partner_id, why_not, pair.pair_score, detail))

    for filtered in sorted(
        filtered_by_user.get(user_id, []),
        key=lambda f: f.b_id if f.a_id == user_id else f.a_id,
    ):
        partner_id = filtered.b_id if filtered.a_id == user_id else filtered.a_id
        top.append(CandidatePartner(partner_id, WhyNot.FAILED_HARD_FILTER, None, filtered.result.reason))

    return UnmatchedRecord(
        user_id=user_id,
        reason=reason,
        message=message,
        best_possible_score=best_score,
        best_possible_match_id=best_id,
        top_candidates=tuple(top[:top_k]),
    )


def run_global_matching(
    candidate_ids: Iterable[str],
    eligibility: EligibilityReport,
    pair_scores: Sequence[PairScore],
    filtered_pairs: Sequence[FilteredPair],
    config: MatchingConfig,
) -> GlobalMatchingOutcome:
    """
    Match the whole batch at once.

    Args:
        candidate_ids: Every candidate in the batch
        eligibility: Eligibility report (its eligible pairs become edges)
        pair_scores: Every scored pair (for unmatched diagnostics)
        filtered_pairs: Every hard-filtered pair (for unmatched diagnostics)
        config: Matching configuration

    Returns:
        GlobalMatchingOutcome

    Raises:
        GraphInconsistencyError: If the matching violates a postcondition
    """
    candidate_ids = sorted(candidate_ids)
    graph = build_matching_graph(candidate_ids, eligibility.eligible, config)
    logger.info(
        f"Matching graph: {graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges"
    )

    matches = find_maximum_weight_matching(graph)
    validate_matching(matches)

    partner_of: Dict[str, str] = {}
    for match in matches:
        partner_of[match.a_id] = match.b_id
        partner_of[match.b_id] = match.a_id

    pairs_by_user = _index_by_user(pair_scores, lambda p: (p.a_id, p.b_id))
    filtered_by_user = _index_by_user(filtered_pairs, lambda f: (f.a_id, f.b_id))

    unmatched = tuple(
        classify_unmatched(
            user_id, partner_of, eligibility, pairs_by_user, filtered_by_user, config.top_k
        )
        for user_id in candidate_ids
        if user_id not in partner_of
    )

    logger.info(f"Matches created: {len(matches)}, unmatched: {len(unmatched)}")
    return GlobalMatchingOutcome(matches=tuple(matches), unmatched=unmatched)


def top_matches(
    user_id: str, eligible_pairs: Iterable[EligiblePair], limit: int = 10
) -> List[Tuple[str, float]]:
    """
    Best eligible partners for one candidate, for manual review hand-off.

    Returns:
        (partner id, pair score) tuples, best first
    """
    ranked = [
        (e.pair.partner_of(user_id), e.pair_score)
        for e in eligible_pairs
        if e.pair.involves(user_id)
    ]
    ranked.sort(key=lambda item: (-item[1], item[0]))
    return ranked[:limit]
