"""Utility modules for the docflow kernel."""

from docflow_kernel.utils.hashing import (
    canonicalize_json,
    hash_payload,
    hash_snapshot,
    to_json_safe,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "hash_snapshot",
    "to_json_safe",
]
