"""Utility modules."""

from multikv.utils.validation import join_key, normalize_key

__all__ = ["join_key", "normalize_key"]
