"""Route discovery: scan handler directories into a RouteTable.

Each configured namespace maps to a directory of handler modules.
Discovery walks the directory, imports every module, and asks a
``RouteReader`` for the routes declared on each controller class and
module-level function::

    handlers/
        health.py          -> app.handlers.health
        admin/users.py     -> app.handlers.admin.users
        _helpers.py        (skipped)

Outside debug mode the scan result is stored in a ``RouteCache`` and a
later discovery of the same namespace and directory loads it instead of
scanning.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

from wren.errors import ConfigurationError
from wren.routing.cache import RouteCache, RouteRecords
from wren.routing.reader import RouteReader
from wren.routing.route import HandlerRef, Route
from wren.routing.table import RouteTable, parse_path

logger = logging.getLogger("wren.routing")


def cache_key(namespace: str, directory: str | Path) -> str:
    """Stable cache key for one namespace/directory pair."""
    resolved = Path(directory).resolve()
    digest = hashlib.sha256(f"{namespace}\0{resolved}".encode()).hexdigest()
    return digest[:16]


def module_path(directory: str | Path, module: str) -> Path:
    """File holding *module* (dotted, relative) below *directory*."""
    return Path(directory) / (module.replace(".", "/") + ".py")


def load_module(namespace: str, directory: str | Path, module: str) -> ModuleType:
    """Import a handler module from *directory* as ``namespace.module``.

    A module already imported from the same file is reused, so discovery
    and invocation share one module object.
    """
    file = module_path(directory, module).resolve()
    name = f"{namespace}.{module}"
    existing = sys.modules.get(name)
    if existing is not None and getattr(existing, "__file__", None) == str(file):
        return existing

    if not file.is_file():
        msg = f"Handler module {name!r} not found at {file}"
        raise ImportError(msg, name=name)
    spec = importlib.util.spec_from_file_location(name, file)
    if spec is None or spec.loader is None:
        msg = f"Cannot load handler module {name!r} from {file}"
        raise ImportError(msg, name=name)
    loaded = importlib.util.module_from_spec(spec)
    sys.modules[name] = loaded
    try:
        spec.loader.exec_module(loaded)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return loaded


class RouteDiscovery:
    """Fills a ``RouteTable`` from configured handler directories.

    Args:
        table: Table receiving the discovered routes.
        reader: Extracts declared routes from classes and functions.
        cache: Store for scan results.
        debug: When True the cache is written but never read.
    """

    __slots__ = ("_cache", "_debug", "_reader", "_table", "scans")

    def __init__(
        self,
        table: RouteTable,
        reader: RouteReader,
        cache: RouteCache,
        *,
        debug: bool = False,
    ) -> None:
        self._table = table
        self._reader = reader
        self._cache = cache
        self._debug = debug
        self.scans = 0

    def discover(self, namespace: str, directory: str | Path) -> list[Route]:
        """Add the routes of *namespace* to the table and return them."""
        root = Path(directory)
        if not root.is_dir():
            msg = f"Route discovery directory for {namespace!r} not found: {root}"
            raise ConfigurationError(msg)

        key = cache_key(namespace, root)
        routes = None if self._debug else self._load_cached(key)
        if routes is None:
            routes = self._scan(namespace, root)
            self._cache.save(key, [r.to_record() for r in routes])

        for route in routes:
            self._table.add(route)
        return routes

    def _load_cached(self, key: str) -> list[Route] | None:
        records: RouteRecords | None = self._cache.load(key)
        if records is None:
            logger.debug("Route cache miss for %s", key)
            return None
        try:
            routes = [Route.from_record(record) for record in records]
        except (KeyError, TypeError):
            logger.warning("Discarding malformed route cache entry %s", key, exc_info=True)
            return None
        logger.debug("Route cache hit for %s: %d routes", key, len(routes))
        return routes

    def _scan(self, namespace: str, root: Path) -> list[Route]:
        self.scans += 1
        routes: list[Route] = []
        for file in _handler_files(root):
            relative = file.relative_to(root).with_suffix("")
            dotted = ".".join(relative.parts)
            module = load_module(namespace, root, dotted)
            for handler in _handlers_in(module):
                routes.extend(self._routes_for(namespace, dotted, handler))
        logger.debug("Scanned %s in %s: %d routes", namespace, root, len(routes))
        return routes

    def _routes_for(self, namespace: str, module: str, handler: Any) -> list[Route]:
        controller = handler.__name__ if inspect.isclass(handler) else None
        routes = []
        for spec in self._reader.read(handler):
            params = tuple(
                seg.param_name or "" for seg in parse_path(spec.path) if seg.is_param
            )
            ref = HandlerRef(
                namespace=namespace,
                module=module,
                controller=controller,
                action=spec.action,
            )
            routes.append(
                Route(
                    path=spec.path,
                    methods=spec.methods,
                    handler=ref,
                    params=params,
                    name=spec.name,
                )
            )
        return routes


def _handler_files(root: Path) -> list[Path]:
    """Python files below *root*, sorted, skipping private and hidden names."""
    files = []
    for file in sorted(root.rglob("*.py")):
        parts = file.relative_to(root).parts
        if any(part.startswith(("_", ".")) for part in parts):
            continue
        files.append(file)
    return files


def _handlers_in(module: ModuleType) -> list[Any]:
    """Classes and functions defined in *module*, in definition order."""
    return [
        obj
        for name, obj in vars(module).items()
        if not name.startswith("_")
        and (inspect.isclass(obj) or inspect.isfunction(obj))
        and getattr(obj, "__module__", None) == module.__name__
    ]
