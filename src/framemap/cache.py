"""Local fallback cache: two string-keyed slots mirrored from the store."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

COUNTRIES_SLOT = "geodetic_data"
HEADERS_SLOT = "table_headers"


def _check_key(key: str) -> str:
    if not key or any(ch in key for ch in "/\\") or key.startswith("."):
        raise ValueError(f"Invalid cache slot key: {key!r}")
    return key


class LocalCache:
    """Directory-backed slots; each slot is one JSON text file."""

    def __init__(self, cache_root: Path) -> None:
        self.cache_root = cache_root
        self.cache_root.mkdir(parents=True, exist_ok=True)

    def slot_path(self, key: str) -> Path:
        return self.cache_root / f"{_check_key(key)}.json"

    def read(self, key: str) -> str | None:
        path = self.slot_path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        path = self.slot_path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self, key: str) -> None:
        self.slot_path(key).unlink(missing_ok=True)
