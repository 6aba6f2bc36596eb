"""
Section aggregation.

Questions are grouped into Lifestyle and Personality. Within a section:

    section = sum(score_i * weight_i) / sum(weight_i)

where weight_i combines both sides' importance (section_importance_mode,
max by default) and score_i * weight_i is the importance-weighted value
after the directional adjustment. If every weight in a section is zero
the unweighted mean is used; an empty section scores 0. The directional
total is

    total = (lifestyle * w_L + personality * w_P) * 100
"""

import logging
from typing import Dict, Iterable, List, Mapping

from ..configs.settings import MatchingConfig
from ..questions.catalog import QuestionTable
from ..schema import Candidate, DirectionalBreakdown, QuestionScore, Section
from .directional import apply_directional_scoring
from .importance import apply_importance_weighting, response_weight

logger = logging.getLogger(__name__)


def section_score(question_scores: Iterable[QuestionScore]) -> float:
    """Sum of weighted scores over the sum of weights in one section."""
    scores = list(question_scores)
    if not scores:
        return 0.0
    total_weight = sum(s.section_weight for s in scores)
    if total_weight <= 0:
        return sum(s.final_similarity for s in scores) / len(scores)
    return sum(s.weighted_similarity for s in scores) / total_weight


def score_question(
    question_id: str,
    raw: float,
    own: Candidate,
    peer: Candidate,
    table: QuestionTable,
    config: MatchingConfig,
) -> QuestionScore:
    """Importance and directional scoring of one question from `own`'s side."""
    spec = table.spec(question_id)
    own_response = own.response(question_id)
    peer_response = peer.response(question_id)

    weighting = apply_importance_weighting(
        raw,
        response_weight(own_response, config),
        response_weight(peer_response, config),
        config.section_importance_mode,
    )
    adjustment = apply_directional_scoring(
        spec, own_response, peer_response, raw, weighting, config
    )

    return QuestionScore(
        question_id=question_id,
        section=table.section(question_id),
        raw_similarity=raw,
        weight_self=weighting.weight_self,
        weight_peer=weighting.weight_peer,
        weighted_similarity=adjustment.weighted,
        directional_multiplier=adjustment.multiplier,
        final_similarity=adjustment.final_similarity,
        section_weight=weighting.weight,
    )


def score_direction(
    own: Candidate,
    peer: Candidate,
    similarities: Mapping[str, float],
    table: QuestionTable,
    config: MatchingConfig,
) -> DirectionalBreakdown:
    """
    Score how well `peer` satisfies `own`.

    Args:
        own: Scoring side
        peer: Scored side
        similarities: Question id -> raw similarity for the pair
        table: Resolved question table
        config: Matching configuration

    Returns:
        DirectionalBreakdown with total in [0, 100]
    """
    question_scores: Dict[str, QuestionScore] = {}
    by_section: Dict[Section, List[QuestionScore]] = {section: [] for section in Section}

    for question_id, raw in similarities.items():
        scored = score_question(question_id, raw, own, peer, table, config)
        question_scores[question_id] = scored
        by_section[scored.section].append(scored)

    section_scores = {section: section_score(scores) for section, scores in by_section.items()}
    total = sum(
        section_scores[section] * config.section_weights[section.value] for section in Section
    ) * 100

    return DirectionalBreakdown(
        from_id=own.id,
        to_id=peer.id,
        total=min(max(total, 0.0), 100.0),
        section_scores=section_scores,
        question_scores=question_scores,
    )
