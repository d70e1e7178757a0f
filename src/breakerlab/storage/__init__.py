from __future__ import annotations

from pathlib import Path

from breakerlab.storage.duckdb_store import Storage


def default_storage() -> Storage:
    return Storage(Path(".breakerlab/breakerlab.duckdb"))


__all__ = ["Storage", "default_storage"]
