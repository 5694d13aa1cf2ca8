"""Credibility and priority scoring."""

from gte.scoring.categories import normalize_category
from gte.scoring.credibility import score as credibility_score
from gte.scoring.priority import priority

__all__ = ["credibility_score", "normalize_category", "priority"]
