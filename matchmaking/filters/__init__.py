"""Hard filters applied before any pair is scored."""

from .hard_filters import (
    check_hard_filters,
    is_compatible_with_preference,
    acts_as_dealbreaker,
    gender_compatible,
    campus_compatible,
    age_compatible,
    GENDER_REASON,
    CAMPUS_REASON,
    AGE_REASON,
    DEALBREAKER_REASON,
)

__all__ = [
    "check_hard_filters",
    "is_compatible_with_preference",
    "acts_as_dealbreaker",
    "gender_compatible",
    "campus_compatible",
    "age_compatible",
    "GENDER_REASON",
    "CAMPUS_REASON",
    "AGE_REASON",
    "DEALBREAKER_REASON",
]
