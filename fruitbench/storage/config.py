from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

STORAGE_KEY = "fruitbench-state"
STORAGE_VERSION = 1
DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "state"


@dataclass(frozen=True)
class StorageConfig:
    """
    Where and how the session state is persisted.

    ``backend`` is ``"file"`` (one JSON file per key under ``data_dir``) or
    ``"memory"`` (process-local, lost on exit).
    """

    storage_key: str = STORAGE_KEY
    version: int = STORAGE_VERSION
    backend: str = os.getenv("FRUITBENCH_STORAGE", "file")
    data_dir: Path = Path(os.getenv("FRUITBENCH_DATA_DIR", DEFAULT_DATA_DIR))
    quota_bytes: int | None = None


DEFAULT_STORAGE_CONFIG = StorageConfig()
