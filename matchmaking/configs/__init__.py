"""Configuration loading and the typed matching configuration."""

from .loader import load_config, validate_config, get_config_value, load_matching_config
from .settings import MatchingConfig, DEFAULT_CONFIG

__all__ = [
    "load_config",
    "validate_config",
    "get_config_value",
    "load_matching_config",
    "MatchingConfig",
    "DEFAULT_CONFIG",
]
