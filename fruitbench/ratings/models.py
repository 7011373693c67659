from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

SCORE_MIN = 0
SCORE_MAX = 10

Score = Annotated[StrictInt, Field(ge=SCORE_MIN, le=SCORE_MAX)]


class FruitTag(str, Enum):
    popular = "popular"
    berries = "berries"
    tropical = "tropical"
    citrus = "citrus"
    stone_fruit = "stone-fruit"
    melons = "melons"
    exotic = "exotic"
    culinary_vegetable = "culinary-vegetable"
    dried = "dried"
    orchard = "orchard"


class Criterion(str, Enum):
    flavor = "flavor"
    nourishment = "nourishment"
    reliability = "reliability"
    practicality = "practicality"


class Tier(str, Enum):
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    F = "F"


class SortColumn(str, Enum):
    name = "name"
    flavor = "flavor"
    nourishment = "nourishment"
    reliability = "reliability"
    practicality = "practicality"
    total = "total"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Catalog ──────────────────────────────────────────────────────────────


class Fruit(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    emoji: str
    tags: tuple[FruitTag, ...] = Field(..., min_length=1)
    search_terms: tuple[str, ...] = ()


class TagInfo(BaseModel):
    label: str
    description: str


class CriterionInfo(BaseModel):
    label: str
    emoji: str
    description: str


# ── Ratings ──────────────────────────────────────────────────────────────


class FruitRating(CamelModel):
    """Four 0-10 integer scores for one fruit.

    Strict types: ``"9"``, ``9.0`` and ``True`` are all rejected, so a
    rating that exists has every criterion inside the score range.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    fruit_id: StrictStr
    flavor: Score
    nourishment: Score
    reliability: Score
    practicality: Score


class RatedFruit(Fruit):
    rating: FruitRating
    total: int
    tier: Tier


# ── Session state ────────────────────────────────────────────────────────


class SortConfig(CamelModel):
    column: SortColumn = SortColumn.total
    direction: SortDirection = SortDirection.desc


class FilterConfig(CamelModel):
    tags: list[str] = Field(default_factory=list)
    search_query: str = ""
    selected_fruit_ids: list[str] = Field(default_factory=list)


class AppState(CamelModel):
    ratings: dict[str, FruitRating] = Field(default_factory=dict)
    selected_fruit_ids: list[str] = Field(default_factory=list)
    sort_config: SortConfig = Field(default_factory=SortConfig)
    filter_config: FilterConfig = Field(default_factory=FilterConfig)


# ── API payloads ─────────────────────────────────────────────────────────


class RatingScores(CamelModel):
    flavor: Score
    nourishment: Score
    reliability: Score
    practicality: Score


class CriterionUpdate(CamelModel):
    criterion: Criterion
    value: Score


class SelectionRequest(CamelModel):
    fruit_ids: list[str]


class ImportRequest(CamelModel):
    document: str = Field(..., min_length=1, description="Text produced by GET /export")


class ImportResponse(CamelModel):
    status: str
    state: AppState


class ResultsResponse(CamelModel):
    results: list[RatedFruit]
    tiers: dict[Tier, list[RatedFruit]]
    sort_config: SortConfig
    total_rated: int


class ShareResponse(CamelModel):
    url: str
    data: str
