from __future__ import annotations

import unicodedata
from typing import Callable, Iterable, Mapping

import pandas as pd

from .models import (
    Fruit,
    FruitRating,
    RatedFruit,
    SortColumn,
    SortConfig,
    SortDirection,
    Tier,
)
from .scoring import TIER_ORDER, to_rated_fruit

RESULTS_COLUMNS: list[str] = [
    "rank",
    "id",
    "name",
    "emoji",
    "flavor",
    "nourishment",
    "reliability",
    "practicality",
    "total",
    "tier",
]


# ── Filtering ────────────────────────────────────────────────────────────


def filter_by_tags(fruits: list[Fruit], tags: Iterable[str]) -> list[Fruit]:
    """Keep fruits carrying at least one of *tags*; no tags means no filter."""
    wanted = {str(getattr(t, "value", t)) for t in tags}
    if not wanted:
        return list(fruits)
    return [f for f in fruits if any(tag.value in wanted for tag in f.tags)]


def filter_by_search(fruits: list[Fruit], query: str | None) -> list[Fruit]:
    """Case-insensitive substring match on the name or any alternate name."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(fruits)

    def _matches(fruit: Fruit) -> bool:
        if needle in fruit.name.lower():
            return True
        return any(needle in term.lower() for term in fruit.search_terms)

    return [f for f in fruits if _matches(f)]


def filter_fruits(
    fruits: list[Fruit],
    tags: Iterable[str] | None = None,
    search_query: str | None = None,
) -> list[Fruit]:
    filtered = filter_by_tags(fruits, tags or [])
    return filter_by_search(filtered, search_query)


def get_fruits_by_ids(fruits: list[Fruit], ids: Iterable[str]) -> list[Fruit]:
    """Return fruits in the order of *ids*, skipping ids not in *fruits*."""
    by_id = {f.id: f for f in fruits}
    return [by_id[i] for i in ids if i in by_id]


def get_unique_tags(fruits: list[Fruit]) -> list[str]:
    seen: dict[str, None] = {}
    for fruit in fruits:
        for tag in fruit.tags:
            seen.setdefault(tag.value, None)
    return list(seen)


def select_fruit_ids(
    fruits: list[Fruit],
    tags: Iterable[str],
    removed_ids: Iterable[str] = (),
) -> list[str]:
    """Selection implied by the chosen tags, minus fruits removed by hand."""
    tag_list = list(tags)
    if not tag_list:
        return []
    removed = set(removed_ids)
    return [f.id for f in filter_by_tags(fruits, tag_list) if f.id not in removed]


# ── Rated views ──────────────────────────────────────────────────────────


def get_rated_fruits(
    fruits: list[Fruit],
    ratings: Mapping[str, FruitRating],
) -> list[RatedFruit]:
    """Rated view of *fruits*; fruits without a usable rating are skipped."""
    rated: list[RatedFruit] = []
    for fruit in fruits:
        rating = ratings.get(fruit.id)
        if rating is None:
            continue
        item = to_rated_fruit(fruit, rating)
        if item is not None:
            rated.append(item)
    return rated


def _collation_key(name: str) -> tuple[str, str]:
    # Accent- and case-insensitive first, exact text as the tie-breaker.
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), name)


_SORT_KEYS: dict[SortColumn, Callable[[RatedFruit], object]] = {
    SortColumn.name: lambda f: _collation_key(f.name),
    SortColumn.flavor: lambda f: f.rating.flavor,
    SortColumn.nourishment: lambda f: f.rating.nourishment,
    SortColumn.reliability: lambda f: f.rating.reliability,
    SortColumn.practicality: lambda f: f.rating.practicality,
    SortColumn.total: lambda f: f.total,
}


def sort_rated_fruits(
    fruits: list[RatedFruit],
    column: SortColumn | str,
    direction: SortDirection | str,
) -> list[RatedFruit]:
    """Stable sort returning a new list; equal keys keep their input order."""
    key = _SORT_KEYS[SortColumn(column)]
    descending = SortDirection(direction) is SortDirection.desc
    return sorted(fruits, key=key, reverse=descending)


def next_sort_config(current: SortConfig, column: SortColumn | str) -> SortConfig:
    """Clicking the active column flips direction; a new column starts descending."""
    column = SortColumn(column)
    if current.column is column:
        flipped = SortDirection.asc if current.direction is SortDirection.desc else SortDirection.desc
        return SortConfig(column=column, direction=flipped)
    return SortConfig(column=column, direction=SortDirection.desc)


def group_by_tier(fruits: list[RatedFruit]) -> dict[Tier, list[RatedFruit]]:
    groups: dict[Tier, list[RatedFruit]] = {tier: [] for tier in TIER_ORDER}
    for fruit in fruits:
        groups[fruit.tier].append(fruit)
    return groups


def results_table(fruits: list[RatedFruit]) -> pd.DataFrame:
    """Tabular view of already-sorted results, one row per fruit."""
    rows = [
        {
            "rank": position,
            "id": f.id,
            "name": f.name,
            "emoji": f.emoji,
            "flavor": f.rating.flavor,
            "nourishment": f.rating.nourishment,
            "reliability": f.rating.reliability,
            "practicality": f.rating.practicality,
            "total": f.total,
            "tier": f.tier.value,
        }
        for position, f in enumerate(fruits, start=1)
    ]
    return pd.DataFrame(rows, columns=RESULTS_COLUMNS)
