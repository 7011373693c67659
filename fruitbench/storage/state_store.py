"""
Persisted session state.

One record lives under a fixed key as ``{"version": 1, "state": {...}}``.
``StateStore`` is the only code that touches it: ``load``, ``save`` and
``clear`` are the mutation entry points and every other method is a
read-modify-write wrapper around them.

The read-modify-write sequences are not transactional. Two processes that
share one backend can overwrite each other's last write.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from ..ratings.models import AppState, Criterion, FilterConfig, FruitRating, SortConfig
from ..ratings.scoring import blank_rating, update_criterion
from .backends import KeyValueStore, StorageError, create_backend
from .config import DEFAULT_STORAGE_CONFIG, StorageConfig
from .validation import default_state, validate_state

logger = logging.getLogger(__name__)


class StateStore:
    def __init__(
        self,
        backend: KeyValueStore,
        config: StorageConfig = DEFAULT_STORAGE_CONFIG,
    ) -> None:
        self.backend = backend
        self.config = config

    # ── Core entry points ────────────────────────────────────────────────

    def load(self) -> AppState:
        """Return the saved state, or the default state if there is none.

        Unreadable or unparseable records and records stamped with another
        version all fall back to the default; there is no migration path.
        Individual malformed fields are dropped by ``validate_state``.
        """
        try:
            stored = self.backend.get(self.config.storage_key)
        except (StorageError, OSError):
            logger.warning("Failed to read saved state, using default state", exc_info=True)
            return default_state()

        if not stored:
            return default_state()

        try:
            data = json.loads(stored)
        except (ValueError, RecursionError):
            logger.warning("Saved state is not valid JSON, using default state", exc_info=True)
            return default_state()

        if not isinstance(data, dict):
            logger.warning("Saved state is not a JSON object, using default state")
            return default_state()

        version = data.get("version")
        if isinstance(version, bool) or version != self.config.version:
            logger.warning(
                "Storage version mismatch (found %r, expected %r), using default state",
                version,
                self.config.version,
            )
            return default_state()

        result = validate_state(data.get("state"))
        if result.issues:
            logger.debug("Dropped invalid saved fields: %s", ", ".join(result.issues))
        return result.state

    def save(self, **changes: Any) -> None:
        """Merge *changes* (AppState field names) over the saved state and write it."""
        unknown = set(changes) - set(AppState.model_fields)
        if unknown:
            raise TypeError(f"Unknown state fields: {', '.join(sorted(unknown))}")

        current = self.load()
        merged = AppState.model_validate({**dict(current), **changes})
        self._write(merged)

    def clear(self) -> None:
        try:
            self.backend.delete(self.config.storage_key)
        except (StorageError, OSError):
            logger.warning("Failed to clear saved state", exc_info=True)

    def _write(self, state: AppState) -> bool:
        record = {
            "version": self.config.version,
            "state": state.model_dump(mode="json", by_alias=True),
        }
        try:
            self.backend.set(self.config.storage_key, json.dumps(record))
        except (StorageError, OSError):
            logger.warning("Failed to save state", exc_info=True)
            return False
        return True

    # ── Ratings ──────────────────────────────────────────────────────────

    def save_rating(self, fruit_id: str, scores: Mapping[str, Any] | BaseModel) -> FruitRating:
        if isinstance(scores, BaseModel):
            scores = scores.model_dump()
        rating = FruitRating.model_validate(
            {"fruit_id": fruit_id, **{c.value: scores.get(c.value) for c in Criterion}}
        )
        state = self.load()
        state.ratings[fruit_id] = rating
        self.save(ratings=state.ratings)
        return rating

    def rate_criterion(self, fruit_id: str, criterion: Criterion | str, value: int) -> FruitRating:
        """Score one criterion, starting from an all-zero rating if needed."""
        state = self.load()
        existing = state.ratings.get(fruit_id) or blank_rating(fruit_id)
        rating = update_criterion(existing, Criterion(criterion), value)
        state.ratings[fruit_id] = rating
        self.save(ratings=state.ratings)
        return rating

    def delete_rating(self, fruit_id: str) -> None:
        state = self.load()
        state.ratings.pop(fruit_id, None)
        self.save(ratings=state.ratings)

    # ── Selection ────────────────────────────────────────────────────────

    def save_selected_fruits(self, fruit_ids: list[str]) -> None:
        self.save(selected_fruit_ids=list(fruit_ids))

    def add_selected_fruit(self, fruit_id: str) -> None:
        state = self.load()
        if fruit_id in state.selected_fruit_ids:
            return
        state.selected_fruit_ids.append(fruit_id)
        self.save(selected_fruit_ids=state.selected_fruit_ids)

    def remove_selected_fruit(self, fruit_id: str) -> None:
        """Drop *fruit_id* from the selection together with its rating."""
        state = self.load()
        state.selected_fruit_ids = [i for i in state.selected_fruit_ids if i != fruit_id]
        state.ratings.pop(fruit_id, None)
        self.save(selected_fruit_ids=state.selected_fruit_ids, ratings=state.ratings)

    # ── View config ──────────────────────────────────────────────────────

    def save_sort_config(self, sort_config: SortConfig) -> None:
        self.save(sort_config=sort_config)

    def save_filter_config(self, filter_config: FilterConfig) -> None:
        self.save(filter_config=filter_config)

    # ── Import / export ──────────────────────────────────────────────────

    def export_state(self) -> str:
        return json.dumps(self.load().model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)

    def import_state(self, text: str) -> bool:
        """Replace the saved state with the sanitized contents of *text*.

        Returns False (and leaves the saved state alone) when *text* is not a
        JSON object. Never raises.
        """
        try:
            raw = json.loads(text)
        except (TypeError, ValueError, RecursionError):
            logger.warning("Failed to import state", exc_info=True)
            return False

        if not isinstance(raw, dict):
            logger.warning("Failed to import state: expected a JSON object, got %s", type(raw).__name__)
            return False

        result = validate_state(raw)
        if result.issues:
            logger.info("Import dropped invalid fields: %s", ", ".join(result.issues))
        return self._write(result.state)


_store: StateStore | None = None


def get_state_store() -> StateStore:
    """Return the process-wide store, creating it from the default config on first call."""
    global _store
    if _store is None:
        _store = StateStore(create_backend(DEFAULT_STORAGE_CONFIG))
    return _store
