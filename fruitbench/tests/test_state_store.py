from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from fruitbench.catalog.data_store import get_fruits
from fruitbench.ratings.models import FilterConfig, SortColumn, SortConfig, SortDirection
from fruitbench.ratings.query import get_rated_fruits
from fruitbench.storage.backends import FileStore, MemoryStore, create_backend
from fruitbench.storage.config import STORAGE_KEY, StorageConfig
from fruitbench.storage.state_store import StateStore
from fruitbench.storage.validation import default_state

BANANA_SCORES = {"flavor": 9, "nourishment": 8, "reliability": 10, "practicality": 10}
APPLE_SCORES = {"flavor": 8, "nourishment": 7, "reliability": 9, "practicality": 9}


@pytest.fixture()
def store() -> StateStore:
    return StateStore(MemoryStore())


def _write_raw(store: StateStore, record) -> None:
    store.backend.set(STORAGE_KEY, record if isinstance(record, str) else json.dumps(record))


# ── load ─────────────────────────────────────────────────────────────────


class TestLoad:
    def test_empty_store_gives_default(self, store):
        assert store.load() == default_state()

    def test_unparseable_record_gives_default(self, store):
        _write_raw(store, "{not json")
        assert store.load() == default_state()

    def test_foreign_version_gives_exact_default(self, store, caplog):
        _write_raw(
            store,
            {
                "version": 2,
                "state": {
                    "ratings": {"banana": {"fruitId": "banana", **BANANA_SCORES}},
                    "selectedFruitIds": ["banana"],
                },
            },
        )
        with caplog.at_level(logging.WARNING, logger="fruitbench.storage.state_store"):
            assert store.load() == default_state()
        assert "version mismatch" in caplog.text

    def test_boolean_version_is_a_mismatch(self, store):
        _write_raw(store, {"version": True, "state": {"selectedFruitIds": ["banana"]}})
        assert store.load() == default_state()

    def test_invalid_rating_dropped_rest_kept(self, store):
        _write_raw(
            store,
            {
                "version": 1,
                "state": {
                    "ratings": {
                        "banana": {"fruitId": "banana", **BANANA_SCORES},
                        "kiwi": {"fruitId": "kiwi", **BANANA_SCORES, "flavor": 11},
                        "orange": {"fruitId": "orange", **BANANA_SCORES, "flavor": "9"},
                    },
                    "selectedFruitIds": ["banana", "kiwi", "orange"],
                },
            },
        )
        state = store.load()
        assert list(state.ratings) == ["banana"]
        assert state.selected_fruit_ids == ["banana", "kiwi", "orange"]

    def test_orphaned_ratings_are_tolerated(self, store):
        _write_raw(
            store,
            {"version": 1, "state": {"ratings": {"dodo-fruit": {"fruitId": "dodo-fruit", **BANANA_SCORES}}}},
        )
        state = store.load()
        assert "dodo-fruit" in state.ratings
        assert get_rated_fruits(get_fruits(), state.ratings) == []

    def test_loaded_state_can_be_mutated_safely(self, store):
        store.load().selected_fruit_ids.append("banana")
        assert store.load().selected_fruit_ids == []


# ── save and wrappers ────────────────────────────────────────────────────


class TestSave:
    def test_partial_save_merges(self, store):
        store.save_selected_fruits(["banana"])
        store.save(sort_config=SortConfig(column=SortColumn.name, direction=SortDirection.asc))
        state = store.load()
        assert state.selected_fruit_ids == ["banana"]
        assert state.sort_config.column is SortColumn.name

    def test_record_is_versioned_camel_case_json(self, store):
        store.save_rating("banana", BANANA_SCORES)
        record = json.loads(store.backend.get(STORAGE_KEY))
        assert record["version"] == 1
        assert record["state"]["ratings"]["banana"]["fruitId"] == "banana"
        assert "selectedFruitIds" in record["state"]
        assert record["state"]["sortConfig"] == {"column": "total", "direction": "desc"}

    def test_unknown_field_is_rejected(self, store):
        with pytest.raises(TypeError):
            store.save(favourite="banana")

    def test_write_failure_is_logged_not_raised(self, caplog):
        store = StateStore(MemoryStore(quota_bytes=10))
        with caplog.at_level(logging.WARNING, logger="fruitbench.storage.state_store"):
            store.save_rating("banana", BANANA_SCORES)
        assert "Failed to save state" in caplog.text
        assert store.load() == default_state()


class TestRatings:
    def test_save_rating(self, store):
        rating = store.save_rating("banana", BANANA_SCORES)
        assert rating.fruit_id == "banana"
        assert store.load().ratings["banana"] == rating

    def test_save_rating_rejects_bad_scores(self, store):
        with pytest.raises(ValidationError):
            store.save_rating("banana", {**BANANA_SCORES, "flavor": 11})
        assert store.load().ratings == {}

    def test_rate_one_criterion_at_a_time(self, store):
        store.rate_criterion("kiwi", "flavor", 7)
        rating = store.rate_criterion("kiwi", "practicality", 3)
        assert (rating.flavor, rating.nourishment, rating.reliability, rating.practicality) == (7, 0, 0, 3)
        assert store.load().ratings["kiwi"] == rating

    def test_delete_rating(self, store):
        store.save_rating("banana", BANANA_SCORES)
        store.save_rating("apple-red", APPLE_SCORES)
        store.delete_rating("banana")
        assert list(store.load().ratings) == ["apple-red"]

    def test_delete_missing_rating_is_harmless(self, store):
        store.delete_rating("banana")
        assert store.load().ratings == {}


class TestSelection:
    def test_add_is_idempotent(self, store):
        store.add_selected_fruit("banana")
        store.add_selected_fruit("kiwi")
        store.add_selected_fruit("banana")
        assert store.load().selected_fruit_ids == ["banana", "kiwi"]

    def test_remove_also_erases_rating(self, store):
        store.save_selected_fruits(["banana", "apple-red"])
        store.save_rating("banana", BANANA_SCORES)
        store.save_rating("apple-red", APPLE_SCORES)

        store.remove_selected_fruit("banana")

        state = store.load()
        assert state.selected_fruit_ids == ["apple-red"]
        assert "banana" not in state.ratings
        assert [r.id for r in get_rated_fruits(get_fruits(), state.ratings)] == ["apple-red"]


class TestViewConfig:
    def test_save_sort_config(self, store):
        store.save_sort_config(SortConfig(column=SortColumn.flavor, direction=SortDirection.asc))
        assert store.load().sort_config == SortConfig(column="flavor", direction="asc")

    def test_save_filter_config(self, store):
        store.save_filter_config(FilterConfig(tags=["citrus"], search_query="lime"))
        loaded = store.load().filter_config
        assert loaded.tags == ["citrus"]
        assert loaded.search_query == "lime"


# ── clear / export / import ──────────────────────────────────────────────


def test_clear_resets_to_default(store):
    store.save_rating("banana", BANANA_SCORES)
    store.clear()
    assert store.backend.get(STORAGE_KEY) is None
    assert store.load() == default_state()


class TestImportExport:
    def test_round_trip(self, store):
        store.save_selected_fruits(["banana", "apple-red"])
        store.save_rating("banana", BANANA_SCORES)
        store.save_rating("apple-red", APPLE_SCORES)

        other = StateStore(MemoryStore())
        assert other.import_state(store.export_state()) is True

        assert other.load().ratings == store.load().ratings
        assert other.load().selected_fruit_ids == ["banana", "apple-red"]

    def test_export_is_indented_json(self, store):
        text = store.export_state()
        assert text.startswith("{\n  ")
        assert json.loads(text)["sortConfig"] == {"column": "total", "direction": "desc"}

    def test_unparseable_import_leaves_state_untouched(self, store):
        store.save_rating("banana", BANANA_SCORES)
        before = store.load()
        assert store.import_state("definitely not json") is False
        assert store.import_state("[1, 2, 3]") is False
        assert store.load() == before

    def test_import_sanitizes(self, store):
        document = json.dumps(
            {
                "ratings": {
                    "banana": {"fruitId": "banana", **BANANA_SCORES},
                    "kiwi": {"fruitId": "kiwi", **BANANA_SCORES, "nourishment": -3},
                },
                "selectedFruitIds": ["banana", 7],
                "sortConfig": {"column": "sweetness"},
            }
        )
        assert store.import_state(document) is True
        state = store.load()
        assert list(state.ratings) == ["banana"]
        assert state.selected_fruit_ids == ["banana"]
        assert state.sort_config.column is SortColumn.total

    def test_import_write_failure_reports_false(self):
        store = StateStore(MemoryStore(quota_bytes=10))
        assert store.import_state(json.dumps({"selectedFruitIds": ["banana"]})) is False


# ── File backend ─────────────────────────────────────────────────────────


def test_file_backend_persists_between_stores(tmp_path: Path):
    first = StateStore(FileStore(tmp_path))
    first.save_rating("banana", BANANA_SCORES)

    path = tmp_path / f"{STORAGE_KEY}.json"
    assert path.is_file()

    second = StateStore(FileStore(tmp_path))
    assert second.load().ratings["banana"].flavor == 9

    second.clear()
    assert not path.exists()
    assert first.load() == default_state()


def test_create_backend_from_config(tmp_path: Path):
    assert isinstance(create_backend(StorageConfig(backend="memory")), MemoryStore)
    file_backend = create_backend(StorageConfig(backend="file", data_dir=tmp_path))
    assert isinstance(file_backend, FileStore)
    with pytest.raises(ValueError):
        create_backend(StorageConfig(backend="cloud"))


# ── Deeply nested input ──────────────────────────────────────────────────

DEEPLY_NESTED = "[" * 100_000 + "]" * 100_000


def test_deeply_nested_record_gives_default(store, caplog):
    _write_raw(store, DEEPLY_NESTED)
    with caplog.at_level(logging.WARNING, logger="fruitbench.storage.state_store"):
        assert store.load() == default_state()
    assert "not valid JSON" in caplog.text


def test_deeply_nested_record_does_not_block_writes(store):
    _write_raw(store, DEEPLY_NESTED)
    store.save_rating("banana", BANANA_SCORES)
    assert store.load().ratings["banana"].flavor == 9


def test_deeply_nested_import_reports_false(store):
    store.save_rating("banana", BANANA_SCORES)
    before = store.load()
    assert store.import_state(DEEPLY_NESTED) is False
    assert store.load() == before


# ── File backend writes ──────────────────────────────────────────────────


def test_failed_file_write_keeps_previous_record(tmp_path: Path, monkeypatch):
    store = StateStore(FileStore(tmp_path))
    store.save_rating("banana", BANANA_SCORES)

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("fruitbench.storage.backends.os.replace", fail_replace)
    store.save_rating("apple-red", APPLE_SCORES)
    monkeypatch.undo()

    assert list(store.load().ratings) == ["banana"]
    assert [p.name for p in tmp_path.iterdir()] == [f"{STORAGE_KEY}.json"]


def test_default_data_dir_is_inside_the_package():
    import fruitbench
    from fruitbench.storage.config import DEFAULT_DATA_DIR

    assert DEFAULT_DATA_DIR.is_absolute()
    assert DEFAULT_DATA_DIR == Path(fruitbench.__file__).resolve().parent / "data" / "state"
