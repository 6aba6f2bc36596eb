"""
Configuration loading and validation.

Reads the YAML configuration of a matching run, reports structural
problems as a list of issues, and builds the validated MatchingConfig a
run is given.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List

import yaml

from ..errors import ConfigurationError
from .settings import MatchingConfig, SECTION_WEIGHT_TOLERANCE

logger = logging.getLogger(__name__)


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Read the raw (nested) matching configuration.

    Args:
        filepath: YAML file path

    Returns:
        Nested configuration dictionary

    Raises:
        FileNotFoundError: If the file is missing
        ValueError: If the file is empty or its top level is not a mapping
        yaml.YAMLError: If the YAML cannot be parsed
    """
    path = Path(filepath)
    if not path.is_file():
        raise FileNotFoundError(f"Matching config not found: {filepath}")

    logger.info(f"Reading matching config {path}")
    raw = yaml.safe_load(path.read_text())
    if raw is None:
        raise ValueError(f"Matching config is empty: {filepath}")
    if not isinstance(raw, dict):
        raise ValueError(f"Matching config must be a mapping, got {type(raw).__name__}")
    return raw


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Collect structural problems in a raw configuration.

    Args:
        config: Nested configuration dictionary

    Returns:
        Issue messages, empty when the structure looks right
    """
    issues = []

    for section in ("thresholds", "mutuality", "importance", "sections"):
        if section not in config:
            issues.append(f"Missing required section: {section}")

    sections = config.get("sections", {})
    weights = sections.get("weights")
    if weights is not None:
        total = sum(weights.values())
        if abs(total - 1.0) > SECTION_WEIGHT_TOLERANCE:
            issues.append(f"Section weights don't sum to 1: {total}")
    else:
        issues.append("Missing sections.weights")

    if "membership" not in sections:
        issues.append("Missing sections.membership (defaults will be used)")

    thresholds = config.get("thresholds", {})
    t_min = thresholds.get("t_min", 50)
    if not 0 <= t_min <= 100:
        issues.append(f"thresholds.t_min must be in [0, 100], got {t_min}")
    beta = thresholds.get("beta", 0.6)
    if not 0 <= beta <= 1:
        issues.append(f"thresholds.beta must be in [0, 1], got {beta}")

    alpha = config.get("mutuality", {}).get("alpha", 0.65)
    if not 0 <= alpha <= 1:
        issues.append(f"Mutuality alpha must be in [0, 1], got {alpha}")

    return issues


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Look up a nested value by dotted path (e.g. "thresholds.t_min"), or return `default`."""
    node: Any = config
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def load_matching_config(filepath: str) -> MatchingConfig:
    """
    Load, check and materialize the configuration for a run.

    Structural issues are logged as warnings; invalid values stop the run.

    Args:
        filepath: Path to the YAML configuration file

    Returns:
        Validated MatchingConfig

    Raises:
        ConfigurationError: If any value is invalid
    """
    config = load_config(filepath)
    for issue in validate_config(config):
        logger.warning(f"Config issue: {issue}")

    try:
        matching_config = MatchingConfig.from_config(config)
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Malformed configuration in {filepath}: {e}") from e

    matching_config.validate()
    return matching_config
