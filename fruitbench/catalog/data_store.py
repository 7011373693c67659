from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..ratings.models import Criterion, CriterionInfo, Fruit, FruitTag, TagInfo

_CATALOG_JSON = Path(__file__).resolve().parent / "fruits.json"

_raw: dict[str, Any] | None = None
_fruits: list[Fruit] | None = None
_fruits_by_id: dict[str, Fruit] | None = None


def _load() -> dict[str, Any]:
    global _raw
    if _raw is None:
        with open(_CATALOG_JSON, encoding="utf-8") as f:
            _raw = json.load(f)
    return _raw


def get_fruits() -> list[Fruit]:
    """Return the fruit catalog in display order, loading it on first call."""
    global _fruits
    if _fruits is None:
        _fruits = [Fruit.model_validate(item) for item in _load()["fruits"]]
    return _fruits


def get_fruit(fruit_id: str) -> Fruit | None:
    global _fruits_by_id
    if _fruits_by_id is None:
        _fruits_by_id = {f.id: f for f in get_fruits()}
    return _fruits_by_id.get(fruit_id)


def get_tag_metadata() -> dict[FruitTag, TagInfo]:
    return {FruitTag(tag): TagInfo(**info) for tag, info in _load()["tags"].items()}


def get_criterion_metadata() -> dict[Criterion, CriterionInfo]:
    return {Criterion(key): CriterionInfo(**info) for key, info in _load()["criteria"].items()}
