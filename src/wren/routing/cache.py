"""Stores for discovered route records.

``FileRouteCache`` persists one JSON file per discovery key under the
configured cache directory, so a restarted process skips scanning.
``MemoryRouteCache`` keeps records for the life of the process only and
is what debug mode uses.

Record format::

    {"version": 1, "routes": [{"path": "/users", "methods": ["POST"], ...}]}
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger("wren.routing")

CACHE_VERSION = 1

RouteRecords = list[dict[str, Any]]


class RouteCache(Protocol):
    """Key-value store for route records."""

    def load(self, key: str) -> RouteRecords | None: ...
    def save(self, key: str, records: RouteRecords) -> None: ...
    def clear(self) -> None: ...


class MemoryRouteCache:
    """Process-local route store. Nothing survives a restart."""

    __slots__ = ("_lock", "_store")

    def __init__(self) -> None:
        self._store: dict[str, RouteRecords] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> RouteRecords | None:
        with self._lock:
            records = self._store.get(key)
        return list(records) if records is not None else None

    def save(self, key: str, records: RouteRecords) -> None:
        with self._lock:
            self._store[key] = list(records)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)


class FileRouteCache:
    """Route store backed by JSON files in *directory*.

    Writes go to a temporary file first and are moved into place, so a
    reader never sees a half-written cache. A file that cannot be read
    or has another version is treated as a miss.
    """

    __slots__ = ("directory",)

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"routes-{key}.json"

    def load(self, key: str) -> RouteRecords | None:
        path = self.path_for(key)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable route cache %s", path, exc_info=True)
            return None
        if not isinstance(payload, dict) or payload.get("version") != CACHE_VERSION:
            logger.debug("Ignoring route cache %s with unexpected format", path)
            return None
        routes = payload.get("routes")
        return routes if isinstance(routes, list) else None

    def save(self, key: str, records: RouteRecords) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"version": CACHE_VERSION, "routes": records}, indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".routes-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(payload)
            os.replace(tmp_name, self.path_for(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        for path in self.directory.glob("routes-*.json"):
            path.unlink(missing_ok=True)
