"""
Share links and export files.

A share link carries ``{"ratings": ..., "selectedFruitIds": ...}`` as
base64-encoded JSON in the ``data`` query parameter. Opening such a link
takes priority over the saved session; the parameter is removed from the
URL once it has been consumed. Share data is untrusted and goes through the
same field-by-field validation as saved state.

Export files hold the same two fields plus an ``exportedAt`` timestamp and
can be read back with ``StateStore.import_state``.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from datetime import datetime, timezone
from typing import Iterable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import Field

from ..ratings.models import AppState, CamelModel, FruitRating
from ..storage.state_store import StateStore
from ..storage.validation import validate_state

logger = logging.getLogger(__name__)

SHARE_PARAM = "data"


class ShareDecodeError(Exception):
    """Raised when share data is not base64-encoded JSON object text."""


class SharePayload(CamelModel):
    ratings: dict[str, FruitRating] = Field(default_factory=dict)
    selected_fruit_ids: list[str] = Field(default_factory=list)


class ExportDocument(SharePayload):
    exported_at: datetime


def encode_share_payload(
    ratings: Mapping[str, FruitRating],
    selected_fruit_ids: Iterable[str],
) -> str:
    payload = SharePayload(ratings=dict(ratings), selected_fruit_ids=list(selected_fruit_ids))
    text = json.dumps(payload.model_dump(mode="json", by_alias=True), separators=(",", ":"))
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_share_payload(data: str) -> SharePayload:
    # Query-string parsing turns "+" into a space.
    data = data.strip().replace(" ", "+")
    try:
        raw = json.loads(base64.b64decode(data, validate=True).decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError) as exc:
        raise ShareDecodeError("Share data is not base64-encoded JSON") from exc

    if not isinstance(raw, dict):
        raise ShareDecodeError("Share data is not a JSON object")

    result = validate_state({k: raw[k] for k in ("ratings", "selectedFruitIds") if k in raw})
    if result.issues:
        logger.info("Share link dropped invalid fields: %s", ", ".join(result.issues))
    return SharePayload(
        ratings=result.state.ratings,
        selected_fruit_ids=result.state.selected_fruit_ids,
    )


def build_share_url(
    base_url: str,
    ratings: Mapping[str, FruitRating],
    selected_fruit_ids: Iterable[str],
) -> str:
    """Link to *base_url*'s page with the encoded payload as its only query."""
    parts = urlsplit(base_url)
    query = urlencode({SHARE_PARAM: encode_share_payload(ratings, selected_fruit_ids)})
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


def strip_share_param(url: str) -> str:
    parts = urlsplit(url)
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != SHARE_PARAM]
    return urlunsplit(parts._replace(query=urlencode(kept)))


def load_initial_state(store: StateStore, url: str) -> tuple[AppState, str]:
    """
    Resolve the session to show when *url* is opened.

    Returns the state and the URL to display. A decodable ``data`` parameter
    replaces the saved ratings and selection (and is saved), and the
    returned URL no longer carries it. Undecodable share data is logged and
    the saved session is used with the URL unchanged.
    """
    params = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    data = params.get(SHARE_PARAM)

    if data:
        try:
            payload = decode_share_payload(data)
        except ShareDecodeError:
            logger.warning("Failed to load shared data", exc_info=True)
        else:
            state = store.load()
            state.ratings = payload.ratings
            state.selected_fruit_ids = payload.selected_fruit_ids
            store.save(ratings=state.ratings, selected_fruit_ids=state.selected_fruit_ids)
            return state, strip_share_param(url)

    return store.load(), url


def build_export_document(state: AppState, now: datetime | None = None) -> str:
    document = ExportDocument(
        ratings=state.ratings,
        selected_fruit_ids=state.selected_fruit_ids,
        exported_at=now or datetime.now(timezone.utc),
    )
    return document.model_dump_json(indent=2, by_alias=True)


def export_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"fruitbench-{int(now.timestamp() * 1000)}.json"
