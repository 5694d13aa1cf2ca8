"""Pluggable content-relevance signal."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Protocol

from gte.config import Settings


CIVIC_ISSUE = "CivicIssue"
GENERAL = "General"
UNCERTAIN = "Uncertain"

CIVIC_KEYWORDS = re.compile(
    r"(pothole|road|garbage|waste|sewage|drain|water|streetlight|electric|leak)"
)


class RelevanceUnavailable(RuntimeError):
    """The classifier could not produce a verdict; the caller may retry."""


@dataclass(frozen=True)
class RelevanceVerdict:
    relevant: bool
    label: str
    confidence: Optional[float] = None


class RelevanceClassifier(Protocol):
    def classify(self, title: str, category: str, description: str) -> RelevanceVerdict:
        """Decide whether the text describes a real civic issue."""


class KeywordRelevanceClassifier:
    """Keyword heuristic standing in for a trained classifier."""

    def classify(self, title: str, category: str, description: str) -> RelevanceVerdict:
        text = f"{title or ''} {category or ''} {description or ''}".lower()
        relevant = bool(CIVIC_KEYWORDS.search(text))
        return RelevanceVerdict(relevant=relevant, label=CIVIC_ISSUE if relevant else GENERAL)


def build_classifier(settings: Optional[Settings] = None) -> RelevanceClassifier:
    """Return the classifier selected by RELEVANCE_CLASSIFIER."""
    settings = settings or Settings()
    name = settings.relevance_classifier.lower()
    if name == "keyword":
        return KeywordRelevanceClassifier()
    if name == "gemini":
        from gte.relevance.gemini import GeminiRelevanceClassifier

        return GeminiRelevanceClassifier(settings)
    raise ValueError(f"Unknown RELEVANCE_CLASSIFIER: {settings.relevance_classifier!r}")
