"""Utility functions for the bizops kernel."""

from bizops_kernel.utils.serialization import (
    canonicalize_json,
    row_snapshot,
    to_json_safe,
)

__all__ = [
    "canonicalize_json",
    "row_snapshot",
    "to_json_safe",
]
