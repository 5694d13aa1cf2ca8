"""Relevance classification and the credibility revision worker."""

from gte.relevance.classifier import (
    KeywordRelevanceClassifier,
    RelevanceClassifier,
    RelevanceVerdict,
    build_classifier,
)
from gte.relevance.queue import InMemoryRelevanceQueue, RelevanceQueue, build_queue
from gte.relevance.worker import RelevanceWorker, WorkerStats

__all__ = [
    "InMemoryRelevanceQueue",
    "KeywordRelevanceClassifier",
    "RelevanceClassifier",
    "RelevanceQueue",
    "RelevanceVerdict",
    "RelevanceWorker",
    "WorkerStats",
    "build_classifier",
    "build_queue",
]
