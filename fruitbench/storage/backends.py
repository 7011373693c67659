"""
Key-value backends for the persisted session record.

The state store only needs three calls (get, set, delete) on string values,
so any medium that can provide them fits behind ``KeyValueStore``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

from .config import StorageConfig


class StorageError(Exception):
    """Raised when a backend cannot read or write a value."""


class StorageQuotaError(StorageError):
    """Raised when a write would exceed the backend's capacity."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if *key* was never set."""
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        """Remove *key*; deleting a missing key is not an error."""
        ...


class MemoryStore:
    """Process-local store with an optional size cap (UTF-8 bytes, all keys)."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        size = len(key.encode()) + len(value.encode())
        for k, v in self._items.items():
            if k != key:
                size += len(k.encode()) + len(v.encode())
        return size

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        if self._quota_bytes is not None and self._size_with(key, value) > self._quota_bytes:
            raise StorageQuotaError(
                f"Writing {key!r} would exceed the {self._quota_bytes}-byte quota"
            )
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)


class FileStore:
    """One ``<key>.json`` file per key inside *data_dir*."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not read {path}") from exc

    def set(self, key: str, value: str) -> None:
        # Write beside the target and swap it in, so a failed write keeps the old record.
        path = self._path(key)
        tmp_path = path.with_name(f"{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Could not write {path}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Could not delete {path}") from exc


def create_backend(config: StorageConfig) -> KeyValueStore:
    if config.backend == "memory":
        return MemoryStore(quota_bytes=config.quota_bytes)
    if config.backend == "file":
        return FileStore(config.data_dir)
    raise ValueError(f"Unknown storage backend: {config.backend!r}")
