"""Preprocessing of stored questionnaire responses into typed candidates."""

from .normalizer import ResponseNormalizer, decode_age, normalize_gender, normalize_token

__all__ = ["ResponseNormalizer", "decode_age", "normalize_gender", "normalize_token"]
