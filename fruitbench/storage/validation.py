"""
Schema validation for session state read from untrusted text.

Saved records, imported files and share links all pass through
``validate_state``. Validation never fails as a whole: each field of the
wrong shape is dropped or reset to its default, and its path is recorded in
``ValidationResult.issues`` (``"ratings.kiwi"``, ``"sortConfig.column"``,
``"selectedFruitIds[2]"``). Fields that are simply absent take their default
without being reported.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from ..ratings.models import AppState, FruitRating, SortColumn, SortDirection

DEFAULT_STATE = AppState()

_SORT_COLUMNS = {c.value for c in SortColumn}
_SORT_DIRECTIONS = {d.value for d in SortDirection}


def default_state() -> AppState:
    """A fresh copy of the default state, safe for the caller to mutate."""
    return DEFAULT_STATE.model_copy(deep=True)


@dataclass
class ValidationResult:
    state: AppState
    issues: list[str] = field(default_factory=list)


def validate_rating(value: Any) -> FruitRating | None:
    if not isinstance(value, Mapping):
        return None
    try:
        return FruitRating.model_validate(value)
    except ValidationError:
        return None


def _string_list(value: Any, path: str, issues: list[str]) -> list[str] | None:
    if not isinstance(value, list):
        issues.append(path)
        return None
    kept: list[str] = []
    for i, item in enumerate(value):
        if isinstance(item, str):
            kept.append(item)
        else:
            issues.append(f"{path}[{i}]")
    return kept


def validate_ratings(value: Any, issues: list[str]) -> dict[str, FruitRating] | None:
    if not isinstance(value, Mapping):
        issues.append("ratings")
        return None
    ratings: dict[str, FruitRating] = {}
    for fruit_id, raw_rating in value.items():
        rating = validate_rating(raw_rating)
        if rating is None:
            issues.append(f"ratings.{fruit_id}")
        else:
            ratings[str(fruit_id)] = rating
    return ratings


def validate_state(raw: Any) -> ValidationResult:
    result = ValidationResult(state=default_state())
    state, issues = result.state, result.issues

    if not isinstance(raw, Mapping):
        issues.append("state")
        return result

    if "ratings" in raw:
        ratings = validate_ratings(raw["ratings"], issues)
        if ratings is not None:
            state.ratings = ratings

    if "selectedFruitIds" in raw:
        ids = _string_list(raw["selectedFruitIds"], "selectedFruitIds", issues)
        if ids is not None:
            state.selected_fruit_ids = ids

    if "sortConfig" in raw:
        sort_raw = raw["sortConfig"]
        if not isinstance(sort_raw, Mapping):
            issues.append("sortConfig")
        else:
            if "column" in sort_raw:
                column = sort_raw["column"]
                if isinstance(column, str) and column in _SORT_COLUMNS:
                    state.sort_config.column = SortColumn(column)
                else:
                    issues.append("sortConfig.column")
            if "direction" in sort_raw:
                direction = sort_raw["direction"]
                if isinstance(direction, str) and direction in _SORT_DIRECTIONS:
                    state.sort_config.direction = SortDirection(direction)
                else:
                    issues.append("sortConfig.direction")

    if "filterConfig" in raw:
        filter_raw = raw["filterConfig"]
        if not isinstance(filter_raw, Mapping):
            issues.append("filterConfig")
        else:
            # Tag values are not checked against the catalog vocabulary.
            if "tags" in filter_raw:
                tags = _string_list(filter_raw["tags"], "filterConfig.tags", issues)
                if tags is not None:
                    state.filter_config.tags = tags
            if "searchQuery" in filter_raw:
                query = filter_raw["searchQuery"]
                if isinstance(query, str):
                    state.filter_config.search_query = query
                else:
                    issues.append("filterConfig.searchQuery")
            if "selectedFruitIds" in filter_raw:
                ids = _string_list(
                    filter_raw["selectedFruitIds"], "filterConfig.selectedFruitIds", issues
                )
                if ids is not None:
                    state.filter_config.selected_fruit_ids = ids

    return result
