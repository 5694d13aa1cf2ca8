"""Priority score used to order review queues."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from gte.models import Category


SEVERITY: dict[Category, int] = {
    Category.FLOOD: 40,
    Category.WATER_LEAKAGE: 25,
    Category.ROAD_REPAIR: 20,
    Category.DRAINAGE: 20,
    Category.WASTE_MANAGEMENT: 20,
    Category.STREETLIGHT_OUTAGE: 15,
    Category.PUBLIC_NUISANCE: 10,
    Category.OTHER: 10,
}
DEFAULT_SEVERITY = 10

CREDIBILITY_POINTS = 30
POINTS_PER_SUPPORTER = 10
MAX_SUPPORTER_POINTS = 30


def severity(category: Category | str) -> int:
    try:
        return SEVERITY.get(Category(category), DEFAULT_SEVERITY)
    except ValueError:
        return DEFAULT_SEVERITY


def credibility_weight(credibility: float) -> int:
    # Half-up, so 0.85 -> 25.5 -> 26.
    scaled = Decimal(str(credibility)) * CREDIBILITY_POINTS
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def duplicate_weight(supporter_count: int) -> int:
    return min(max(supporter_count, 0) * POINTS_PER_SUPPORTER, MAX_SUPPORTER_POINTS)


def priority(category: Category | str, credibility: float, supporter_count: int) -> int:
    """Recompute a grievance's priority from scratch."""
    return severity(category) + credibility_weight(credibility) + duplicate_weight(supporter_count)
