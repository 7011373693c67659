from __future__ import annotations

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel

from .catalog.data_store import (
    get_criterion_metadata,
    get_fruit,
    get_fruits,
    get_tag_metadata,
)
from .ratings.models import (
    AppState,
    CriterionUpdate,
    FilterConfig,
    Fruit,
    FruitRating,
    ImportRequest,
    ImportResponse,
    RatingScores,
    ResultsResponse,
    SelectionRequest,
    ShareResponse,
    SortColumn,
    SortConfig,
    SortDirection,
)
from .ratings.query import (
    filter_by_tags,
    filter_fruits,
    get_fruits_by_ids,
    get_rated_fruits,
    group_by_tier,
    next_sort_config,
    results_table,
    sort_rated_fruits,
)
from .sharing.links import (
    build_export_document,
    build_share_url,
    encode_share_payload,
    export_filename,
    load_initial_state,
)
from .storage.state_store import StateStore, get_state_store

app = FastAPI(title="Fruitbench API", version="1.0.0")


class SessionResponse(BaseModel):
    state: AppState
    url: str


def _require_fruit(fruit_id: str) -> Fruit:
    fruit = get_fruit(fruit_id)
    if fruit is None:
        raise HTTPException(status_code=404, detail=f"Unknown fruit: {fruit_id}")
    return fruit


# ── Catalog endpoints ────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/fruits", response_model=list[Fruit])
def fruits(
    tags: list[str] = Query(default=[]),
    q: str | None = None,
) -> list[Fruit]:
    return filter_fruits(get_fruits(), tags=tags, search_query=q)


@app.get("/tags")
def tags() -> list[dict]:
    catalog = get_fruits()
    return [
        {
            "tag": tag.value,
            "label": info.label,
            "description": info.description,
            "count": len(filter_by_tags(catalog, [tag.value])),
        }
        for tag, info in get_tag_metadata().items()
    ]


@app.get("/criteria")
def criteria() -> dict:
    return {c.value: info.model_dump() for c, info in get_criterion_metadata().items()}


# ── Session endpoints ────────────────────────────────────────────────────


@app.get("/session", response_model=SessionResponse)
def session(request: Request, store: StateStore = Depends(get_state_store)) -> SessionResponse:
    # A ?data= share link wins over the saved session and is consumed here.
    state, url = load_initial_state(store, str(request.url))
    return SessionResponse(state=state, url=url)


@app.get("/state", response_model=AppState)
def state(store: StateStore = Depends(get_state_store)) -> AppState:
    return store.load()


@app.delete("/state")
def clear_state(store: StateStore = Depends(get_state_store)) -> dict:
    store.clear()
    return {"status": "cleared"}


# ── Rating endpoints ─────────────────────────────────────────────────────


@app.put("/ratings/{fruit_id}", response_model=FruitRating)
def put_rating(
    fruit_id: str,
    body: RatingScores,
    store: StateStore = Depends(get_state_store),
) -> FruitRating:
    _require_fruit(fruit_id)
    return store.save_rating(fruit_id, body)


@app.patch("/ratings/{fruit_id}", response_model=FruitRating)
def patch_rating(
    fruit_id: str,
    body: CriterionUpdate,
    store: StateStore = Depends(get_state_store),
) -> FruitRating:
    _require_fruit(fruit_id)
    return store.rate_criterion(fruit_id, body.criterion, body.value)


@app.delete("/ratings/{fruit_id}")
def delete_rating(fruit_id: str, store: StateStore = Depends(get_state_store)) -> dict:
    store.delete_rating(fruit_id)
    return {"status": "deleted"}


# ── Selection endpoints ──────────────────────────────────────────────────


@app.put("/selection", response_model=AppState)
def put_selection(
    body: SelectionRequest,
    store: StateStore = Depends(get_state_store),
) -> AppState:
    unknown = [i for i in body.fruit_ids if get_fruit(i) is None]
    if unknown:
        raise HTTPException(status_code=404, detail=f"Unknown fruits: {', '.join(unknown)}")
    store.save_selected_fruits(body.fruit_ids)
    return store.load()


@app.post("/selection/{fruit_id}", response_model=AppState)
def add_selection(fruit_id: str, store: StateStore = Depends(get_state_store)) -> AppState:
    _require_fruit(fruit_id)
    store.add_selected_fruit(fruit_id)
    return store.load()


@app.delete("/selection/{fruit_id}", response_model=AppState)
def remove_selection(fruit_id: str, store: StateStore = Depends(get_state_store)) -> AppState:
    store.remove_selected_fruit(fruit_id)
    return store.load()


# ── View config endpoints ────────────────────────────────────────────────


@app.put("/sort", response_model=SortConfig)
def put_sort(body: SortConfig, store: StateStore = Depends(get_state_store)) -> SortConfig:
    store.save_sort_config(body)
    return store.load().sort_config


@app.post("/sort/{column}", response_model=SortConfig)
def toggle_sort(column: SortColumn, store: StateStore = Depends(get_state_store)) -> SortConfig:
    sort_config = next_sort_config(store.load().sort_config, column)
    store.save_sort_config(sort_config)
    return sort_config


@app.put("/filter", response_model=FilterConfig)
def put_filter(body: FilterConfig, store: StateStore = Depends(get_state_store)) -> FilterConfig:
    store.save_filter_config(body)
    return store.load().filter_config


# ── Results endpoints ────────────────────────────────────────────────────


def _sorted_results(
    store: StateStore,
    column: SortColumn | None,
    direction: SortDirection | None,
    selected_only: bool,
):
    state = store.load()
    catalog = get_fruits()
    if selected_only:
        catalog = get_fruits_by_ids(catalog, state.selected_fruit_ids)
    sort_config = SortConfig(
        column=column or state.sort_config.column,
        direction=direction or state.sort_config.direction,
    )
    rated = get_rated_fruits(catalog, state.ratings)
    return sort_rated_fruits(rated, sort_config.column, sort_config.direction), sort_config


@app.get("/results", response_model=ResultsResponse)
def results(
    column: SortColumn | None = None,
    direction: SortDirection | None = None,
    selected_only: bool = False,
    store: StateStore = Depends(get_state_store),
) -> ResultsResponse:
    ranked, sort_config = _sorted_results(store, column, direction, selected_only)
    return ResultsResponse(
        results=ranked,
        tiers=group_by_tier(ranked),
        sort_config=sort_config,
        total_rated=len(ranked),
    )


@app.get("/results.csv")
def results_csv(
    column: SortColumn | None = None,
    direction: SortDirection | None = None,
    selected_only: bool = False,
    store: StateStore = Depends(get_state_store),
) -> Response:
    ranked, _ = _sorted_results(store, column, direction, selected_only)
    return Response(
        content=results_table(ranked).to_csv(index=False),
        media_type="text/csv",
    )


# ── Share / export endpoints ─────────────────────────────────────────────


@app.get("/export")
def export(store: StateStore = Depends(get_state_store)) -> Response:
    return Response(
        content=build_export_document(store.load()),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@app.post("/import", response_model=ImportResponse)
def import_(body: ImportRequest, store: StateStore = Depends(get_state_store)) -> ImportResponse:
    if not store.import_state(body.document):
        raise HTTPException(status_code=400, detail="Could not import state")
    return ImportResponse(status="imported", state=store.load())


@app.get("/share", response_model=ShareResponse)
def share(request: Request, store: StateStore = Depends(get_state_store)) -> ShareResponse:
    state = store.load()
    url = build_share_url(str(request.url_for("session")), state.ratings, state.selected_fruit_ids)
    return ShareResponse(url=url, data=encode_share_payload(state.ratings, state.selected_fruit_ids))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
