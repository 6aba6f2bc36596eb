"""
Compatibility Matching Engine

This package pairs a pool of candidates one-to-one from their questionnaire
responses: hard filters, per-question similarity, importance and directional
weighting, section aggregation, a mutual pair score, eligibility gates, and
a global maximum-weight matching over the whole batch.

Key Design Decisions:
- Configuration is immutable and passed explicitly into every stage
- Question kinds are a closed table resolved once per run
- Pair scores lean towards the weaker direction (mutuality)
- Matching is global and deterministic (integer weights, sorted ids)
"""

__version__ = "1.0.0"
