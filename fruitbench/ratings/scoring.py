"""
Scoring and tiering for fruit ratings.

A rating's total is the plain sum of its four criteria (0-40). Tiers are
assigned from that total on the 40-point scheme:

    S  36-40  (90%+)
    A  32-35  (80-89%)
    B  28-31  (70-79%)
    C  20-27  (50-69%)
    F   0-19  (<50%)
"""

from __future__ import annotations

from .models import Criterion, Fruit, FruitRating, RatedFruit, Tier

MAX_TOTAL = 40

# Checked top-down; the first minimum the total reaches wins.
TIER_THRESHOLDS: list[tuple[Tier, int]] = [
    (Tier.S, 36),
    (Tier.A, 32),
    (Tier.B, 28),
    (Tier.C, 20),
]

TIER_ORDER: list[Tier] = [Tier.S, Tier.A, Tier.B, Tier.C, Tier.F]


def calculate_total(rating: FruitRating) -> int:
    return rating.flavor + rating.nourishment + rating.reliability + rating.practicality


def calculate_tier(total: int) -> Tier:
    for tier, minimum in TIER_THRESHOLDS:
        if total >= minimum:
            return tier
    return Tier.F


def to_rated_fruit(fruit: Fruit | None, rating: FruitRating) -> RatedFruit | None:
    """Merge a catalog fruit with its rating.

    Returns ``None`` when the fruit is missing or the rating belongs to a
    different fruit; callers decide whether that matters.
    """
    if fruit is None or rating.fruit_id != fruit.id:
        return None

    total = calculate_total(rating)
    return RatedFruit(
        **fruit.model_dump(),
        rating=rating,
        total=total,
        tier=calculate_tier(total),
    )


def is_fully_rated(rating: FruitRating | None) -> bool:
    """True when every criterion has been scored (a zero counts as unset)."""
    if rating is None:
        return False
    return all(getattr(rating, c.value) > 0 for c in Criterion)


def blank_rating(fruit_id: str) -> FruitRating:
    return FruitRating(fruit_id=fruit_id, flavor=0, nourishment=0, reliability=0, practicality=0)


def update_criterion(rating: FruitRating, criterion: Criterion, value: int) -> FruitRating:
    """Return a copy of *rating* with one criterion replaced (range checked)."""
    data = rating.model_dump()
    data[criterion.value] = value
    return FruitRating.model_validate(data)
