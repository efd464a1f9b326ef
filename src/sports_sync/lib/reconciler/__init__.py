"""Reconciler library public API.

Compares a store snapshot against a provider snapshot and classifies each
entity as ok, mismatch, missing-in-db or extra-in-db.
"""

from sports_sync.lib.reconciler.comparators import COMPARATORS, get_comparator
from sports_sync.lib.reconciler.engine import (
    Comparator,
    DiffSource,
    DiffStatus,
    DiffSummary,
    UnifiedEntity,
    reconcile,
    summarize,
)
from sports_sync.lib.reconciler.normalize import normalize_code, normalize_result, normalize_text, normalize_value

__all__ = [
    "COMPARATORS",
    "Comparator",
    "DiffSource",
    "DiffStatus",
    "DiffSummary",
    "UnifiedEntity",
    "get_comparator",
    "normalize_code",
    "normalize_result",
    "normalize_text",
    "normalize_value",
    "reconcile",
    "summarize",
]
