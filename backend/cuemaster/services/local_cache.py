# Overview: On-disk read cache of hall collections; written on every local mutation.

"""
Local Durable Cache

WHY: A terminal must show its last known state at startup, before the
store delivers anything, and must keep every local edit even when the store
write fails. One JSON file per (collection, hall_id).
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any


_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class LocalCache:
    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, collection: str, hall_id: str) -> Path:
        name = f"cuemaster_{collection}_{hall_id}"
        return self.directory / f"{_SAFE_KEY.sub('_', name)}.json"

    def read(self, collection: str, hall_id: str, default: Any = None) -> Any:
        path = self._path(collection, hall_id)
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError):
            # A torn or hand-edited file is treated as no cache
            return default

    def write(self, collection: str, hall_id: str, data: Any) -> None:
        """Atomically replace the cached value (write temp file, then rename)."""
        path = self._path(collection, hall_id)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def clear(self, collection: str, hall_id: str) -> None:
        path = self._path(collection, hall_id)
        if path.exists():
            path.unlink()
