"""
Typed, immutable configuration for a matching run.

A MatchingConfig is built once from the YAML configuration, validated,
and passed explicitly into every stage. Nothing in the engine reads
configuration from module-level state.

Threshold semantics:
    pair_score  = alpha * min(A->B, B->A) + (1 - alpha) * mean(A->B, B->A)
    eligible    = pair_score >= t_min
                  and A->B >= beta * best(A)
                  and B->A >= beta * best(B)
    total(A->B) = lifestyle * w_L + personality * w_P   (w_L + w_P == 1)
"""

import logging
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Mapping, Tuple

import yaml

from ..errors import ConfigurationError
from ..schema import ImportanceLevel, Section

logger = logging.getLogger(__name__)

SECTION_WEIGHT_TOLERANCE = 0.001

DEFAULT_IMPORTANCE_WEIGHTS = {
    ImportanceLevel.NOT_IMPORTANT.value: 0.0,
    ImportanceLevel.SOMEWHAT_IMPORTANT.value: 0.5,
    ImportanceLevel.IMPORTANT.value: 1.0,
    ImportanceLevel.VERY_IMPORTANT.value: 2.0,
}
MAX_IMPORTANCE_WEIGHT = 2.0

DEFAULT_SECTION_WEIGHTS = {
    Section.LIFESTYLE.value: 0.65,
    Section.PERSONALITY.value: 0.35,
}

DEFAULT_SECTION_MEMBERSHIP = {
    Section.LIFESTYLE.value: ("q3",) + tuple(f"q{i}" for i in range(5, 21)),
    Section.PERSONALITY.value: tuple(f"q{i}" for i in range(21, 38)),
}

DEFAULT_CONDITIONAL_HARD_FILTERS = {
    "q9": (ImportanceLevel.IMPORTANT.value, ImportanceLevel.VERY_IMPORTANT.value),
    "q5": (ImportanceLevel.VERY_IMPORTANT.value,),
}

DEFAULT_LOVE_LANGUAGE_WEIGHTS = {"show": 0.6, "receive": 0.4}

SECTION_IMPORTANCE_MODES = ("max", "average")


@dataclass(frozen=True)
class MatchingConfig:
    """
    Configuration for one matching run.

    Attributes:
        t_min: Absolute pair score floor for eligibility, in [0, 100]
        beta: Relative floor as a fraction of each side's best pair score
        mutuality_alpha: Weight of the weaker direction in the pair score
        directional_boost: Multiplier when a more/less preference is satisfied
        directional_penalty: Multiplier when a more/less preference is violated
        importance_weights: Importance level name -> weight
        default_importance: Level used when a response carries none
        section_importance_mode: "max" or "average" of both weights in section means
        section_weights: Section name -> weight, must sum to 1
        section_membership: Section name -> question ids
        low_score_threshold: Questions averaging below this are reported
        asymmetry_threshold: Questions whose two sides differ by more are reported
        top_k: Partners listed per unmatched candidate
        weight_scale: Multiplier turning pair scores into integer edge weights
        max_batch_size: Largest pool a single run accepts
        conditional_hard_filters: Question id -> importance levels that make
            a response act as a dealbreaker
        love_language_weights: Weights of what one side shows against what
            the peer wants to receive ("show"), and the reverse ("receive")
        min_answered_questions: Candidates answering fewer are rejected
        n_jobs: joblib worker count for pair scoring
        backend: joblib backend for pair scoring
    """
    t_min: float = 50.0
    beta: float = 0.6
    mutuality_alpha: float = 0.65
    directional_boost: float = 1.0
    directional_penalty: float = 0.7
    importance_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_IMPORTANCE_WEIGHTS)
    )
    default_importance: str = ImportanceLevel.SOMEWHAT_IMPORTANT.value
    section_importance_mode: str = "max"
    section_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_SECTION_WEIGHTS)
    )
    section_membership: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_SECTION_MEMBERSHIP)
    )
    low_score_threshold: float = 0.3
    asymmetry_threshold: float = 0.4
    top_k: int = 5
    weight_scale: int = 1000
    max_batch_size: int = 500
    conditional_hard_filters: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_CONDITIONAL_HARD_FILTERS)
    )
    love_language_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_LOVE_LANGUAGE_WEIGHTS)
    )
    min_answered_questions: int = 0
    n_jobs: int = 1
    backend: str = "loky"

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: On the first invalid value found
        """
        known_sections = {s.value for s in Section}
        unknown = set(self.section_weights) - known_sections
        if unknown:
            raise ConfigurationError(f"Unknown section names in weights: {sorted(unknown)}")
        missing = known_sections - set(self.section_weights)
        if missing:
            raise ConfigurationError(f"Missing section weights: {sorted(missing)}")
        for name, weight in self.section_weights.items():
            if not 0 <= weight <= 1:
                raise ConfigurationError(f"Section weight {name} must be in [0, 1], got {weight}")
        total = sum(self.section_weights.values())
        if abs(total - 1.0) > SECTION_WEIGHT_TOLERANCE:
            raise ConfigurationError(f"Section weights must sum to 1.0, got {total:.4f}")

        unknown = set(self.section_membership) - known_sections
        if unknown:
            raise ConfigurationError(f"Unknown section names in membership: {sorted(unknown)}")
        seen: Dict[str, str] = {}
        for section, question_ids in self.section_membership.items():
            for question_id in question_ids:
                if question_id in seen:
                    raise ConfigurationError(
                        f"{question_id} is assigned to both {seen[question_id]} and {section}"
                    )
                seen[question_id] = section

        if not 0 <= self.mutuality_alpha <= 1:
            raise ConfigurationError(f"mutuality_alpha must be in [0, 1], got {self.mutuality_alpha}")
        if not 0 <= self.beta <= 1:
            raise ConfigurationError(f"beta must be in [0, 1], got {self.beta}")
        if not 0 <= self.t_min <= 100:
            raise ConfigurationError(f"t_min must be in [0, 100], got {self.t_min}")
        if self.directional_penalty < 0 or self.directional_boost < self.directional_penalty:
            raise ConfigurationError(
                f"Directional multipliers must satisfy 0 <= penalty <= boost, "
                f"got penalty={self.directional_penalty}, boost={self.directional_boost}"
            )

        levels = {level.value for level in ImportanceLevel}
        if set(self.importance_weights) != levels:
            raise ConfigurationError(
                f"importance weights must define exactly {sorted(levels)}, "
                f"got {sorted(self.importance_weights)}"
            )
        for name, weight in self.importance_weights.items():
            if not 0 <= weight <= MAX_IMPORTANCE_WEIGHT:
                raise ConfigurationError(
                    f"Importance weight {name} must be in [0, {MAX_IMPORTANCE_WEIGHT}], got {weight}"
                )
        if self.default_importance not in levels:
            raise ConfigurationError(f"Unknown default importance: {self.default_importance}")
        if self.section_importance_mode not in SECTION_IMPORTANCE_MODES:
            raise ConfigurationError(
                f"section_importance_mode must be one of {SECTION_IMPORTANCE_MODES}, "
                f"got {self.section_importance_mode}"
            )
        for question_id, filter_levels in self.conditional_hard_filters.items():
            bad = set(filter_levels) - levels
            if bad:
                raise ConfigurationError(
                    f"Conditional hard filter {question_id} has unknown levels: {sorted(bad)}"
                )

        if set(self.love_language_weights) != set(DEFAULT_LOVE_LANGUAGE_WEIGHTS):
            raise ConfigurationError(
                f"love_language_weights must define exactly show and receive, "
                f"got {sorted(self.love_language_weights)}"
            )
        if any(weight < 0 for weight in self.love_language_weights.values()):
            raise ConfigurationError(
                f"love_language_weights must be non-negative, got {dict(self.love_language_weights)}"
            )
        total = sum(self.love_language_weights.values())
        if abs(total - 1.0) > SECTION_WEIGHT_TOLERANCE:
            raise ConfigurationError(f"love_language_weights must sum to 1.0, got {total:.4f}")

        for name in ("low_score_threshold", "asymmetry_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")
        if self.top_k < 0:
            raise ConfigurationError(f"top_k must be non-negative, got {self.top_k}")
        if self.weight_scale < 1:
            raise ConfigurationError(f"weight_scale must be >= 1, got {self.weight_scale}")
        if self.max_batch_size < 2:
            raise ConfigurationError(f"max_batch_size must be >= 2, got {self.max_batch_size}")
        if self.min_answered_questions < 0:
            raise ConfigurationError(
                f"min_answered_questions must be non-negative, got {self.min_answered_questions}"
            )
        if self.n_jobs == 0:
            raise ConfigurationError("n_jobs must be non-zero")

    def section_of(self, question_id: str) -> Section:
        for section, question_ids in self.section_membership.items():
            if question_id in question_ids:
                return Section(section)
        raise ConfigurationError(f"{question_id} is not assigned to any section")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        d["section_membership"] = {k: list(v) for k, v in self.section_membership.items()}
        d["conditional_hard_filters"] = {
            k: list(v) for k, v in self.conditional_hard_filters.items()
        }
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MatchingConfig":
        """Create from a flat dictionary as produced by to_dict()."""
        d = dict(d)
        if "section_membership" in d:
            d["section_membership"] = {
                k: tuple(v) for k, v in d["section_membership"].items()
            }
        if "conditional_hard_filters" in d:
            d["conditional_hard_filters"] = {
                k: tuple(v) for k, v in d["conditional_hard_filters"].items()
            }
        try:
            return cls(**d)
        except TypeError as e:
            raise ConfigurationError(f"Invalid matching configuration: {e}") from e

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "MatchingConfig":
        """Create from the main (nested YAML) config dictionary."""
        global_config = config.get("global", {})
        thresholds = config.get("thresholds", {})
        mutuality = config.get("mutuality", {})
        directional = config.get("directional", {})
        importance = config.get("importance", {})
        sections = config.get("sections", {})
        diagnostics = config.get("diagnostics", {})
        matching = config.get("matching", {})
        hard_filters = config.get("hard_filters", {})
        validation = config.get("validation", {})
        special_cases = config.get("special_cases", {})

        membership = sections.get("membership", DEFAULT_SECTION_MEMBERSHIP)
        conditional = hard_filters.get("conditional", DEFAULT_CONDITIONAL_HARD_FILTERS)

        return cls(
            t_min=float(thresholds.get("t_min", 50.0)),
            beta=float(thresholds.get("beta", 0.6)),
            mutuality_alpha=float(mutuality.get("alpha", 0.65)),
            directional_boost=float(directional.get("boost", 1.0)),
            directional_penalty=float(directional.get("penalty", 0.7)),
            importance_weights=dict(importance.get("weights", DEFAULT_IMPORTANCE_WEIGHTS)),
            default_importance=importance.get(
                "default", ImportanceLevel.SOMEWHAT_IMPORTANT.value
            ),
            section_importance_mode=importance.get("section_mode", "max"),
            section_weights=dict(sections.get("weights", DEFAULT_SECTION_WEIGHTS)),
            section_membership={k: tuple(v) for k, v in membership.items()},
            low_score_threshold=float(diagnostics.get("low_score_threshold", 0.3)),
            asymmetry_threshold=float(diagnostics.get("asymmetry_threshold", 0.4)),
            top_k=int(diagnostics.get("top_k", 5)),
            weight_scale=int(matching.get("weight_scale", 1000)),
            max_batch_size=int(matching.get("max_batch_size", 500)),
            conditional_hard_filters={k: tuple(v) for k, v in conditional.items()},
            love_language_weights=dict(
                special_cases.get("love_languages", DEFAULT_LOVE_LANGUAGE_WEIGHTS)
            ),
            min_answered_questions=int(validation.get("min_answered_questions", 0)),
            n_jobs=int(global_config.get("n_jobs", 1)),
            backend=global_config.get("backend", "loky"),
        )

    def save(self, filepath: str) -> None:
        """Save to YAML file."""
        with open(filepath, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=True)
        logger.info(f"Saved matching config to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "MatchingConfig":
        """Load from a YAML file written by save()."""
        with open(filepath, "r") as f:
            d = yaml.safe_load(f)
        return cls.from_dict(d or {})


DEFAULT_CONFIG = MatchingConfig()
