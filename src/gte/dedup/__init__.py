"""Duplicate detection and grouping."""

from gte.dedup.detector import DuplicateDetector, DuplicateMatch
from gte.dedup.groups import GroupAggregator, GroupIntegrityError, MergeResult
from gte.dedup.similarity import distance_m, text_similarity

__all__ = [
    "DuplicateDetector",
    "DuplicateMatch",
    "GroupAggregator",
    "GroupIntegrityError",
    "MergeResult",
    "distance_m",
    "text_similarity",
]
