"""Credibility score from submission trust signals."""

from __future__ import annotations

from gte.models import CredibilitySignals


WEIGHTS: dict[str, float] = {
    "geo_inside_zone": 0.30,
    "submitter_verified": 0.25,
    "unique_image": 0.20,
    "ai_relevant": 0.15,
    "good_history": 0.10,
}


def score(signals: CredibilitySignals) -> float:
    """Weighted sum of the boolean signals, clamped to [0, 1]."""
    total = sum(weight for name, weight in WEIGHTS.items() if getattr(signals, name))
    return round(max(0.0, min(1.0, total)), 4)
