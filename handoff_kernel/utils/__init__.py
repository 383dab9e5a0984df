"""Utility modules for the handoff kernel."""

from handoff_kernel.utils.hashing import (
    canonicalize_json,
    hash_payload,
    to_json_compatible,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "to_json_compatible",
]
