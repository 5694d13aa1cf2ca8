"""Category normalization for free-text submissions."""

from __future__ import annotations

import re
from typing import Optional

from gte.models import Category


# Checked in order; the first pattern that matches wins.
KEYWORD_RULES: tuple[tuple[Category, re.Pattern[str]], ...] = (
    (Category.FLOOD, re.compile(r"\b(flood\w*|inundat\w*|waterlogg\w*)\b")),
    (Category.WATER_LEAKAGE, re.compile(r"\b(leak\w*|pipe ?burst|burst pipe|water supply|tap)\b")),
    (Category.DRAINAGE, re.compile(r"\b(drain\w*|sewage|sewer|manhole|gutter|clog\w*)\b")),
    (Category.STREETLIGHT_OUTAGE, re.compile(r"\b(street ?light\w*|lamp ?post|light pole|electric\w*)\b")),
    (Category.WASTE_MANAGEMENT, re.compile(r"\b(garbage|waste|trash|litter|dump\w*|rubbish)\b")),
    (Category.ROAD_REPAIR, re.compile(r"\b(pot ?holes?|road|pavement|asphalt|footpath)\b")),
    (Category.PUBLIC_NUISANCE, re.compile(r"\b(noise|nuisance|encroach\w*|stray|loud)\b")),
)

_BY_LOWER = {category.value.lower(): category for category in Category}


def infer_category(text: str) -> Category:
    """Guess a category from free text; Other when nothing matches."""
    lowered = text.lower()
    for category, pattern in KEYWORD_RULES:
        if pattern.search(lowered):
            return category
    return Category.OTHER


def normalize_category(raw: Optional[str], text: str = "") -> Category:
    """Map user-supplied category text onto the closed enumeration.

    Unknown or missing values fall back to keyword inference over the
    report text instead of failing the submission.
    """
    if raw:
        cleaned = re.sub(r"[\s_-]+", " ", raw).strip().lower()
        if cleaned in _BY_LOWER:
            return _BY_LOWER[cleaned]
        guessed = infer_category(raw)
        if guessed is not Category.OTHER:
            return guessed
    return infer_category(text)
