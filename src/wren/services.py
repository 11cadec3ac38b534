"""Explicit dependency container and factory registry.

``Services`` is the one object the kernel hands to handlers and
factories. It carries the runtime flags every collaborator needs, named
values, and typed providers for handler injection::

    services = Services()
    services.provide(UserStore, lambda: store)

    # Any handler with ``users: UserStore`` gets the store injected.

``Registry`` maps configuration keys to factories, so configuration can
name subscribers and the user provider without importing them::

    registry = Registry()
    registry.register("audit", lambda services: AuditSubscriber(services["db"]))
    kernel = Kernel(KernelConfig(..., subscribers=("audit",)), registry=registry)
"""

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from wren.errors import ConfigurationError

_MISSING = object()


class Services:
    """Dependencies shared by the kernel, its handlers and its factories."""

    __slots__ = ("_providers", "_values", "cache_directory", "debug", "user_provider")

    def __init__(
        self,
        *,
        debug: bool = False,
        cache_directory: str | Path | None = None,
        user_provider: Any = None,
    ) -> None:
        self.debug = debug
        self.cache_directory = cache_directory
        self.user_provider = user_provider
        self._values: dict[str, Any] = {}
        self._providers: dict[Any, Callable[[], Any]] = {}

    # -- Named values --

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def __getitem__(self, name: str) -> Any:
        value = self._values.get(name, _MISSING)
        if value is _MISSING:
            msg = f"No service named {name!r}"
            raise KeyError(msg)
        return value

    def __setitem__(self, name: str, value: Any) -> None:
        self._values[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    # -- Typed providers --

    def provide(self, annotation: Any, factory: Callable[[], Any]) -> None:
        """Register a zero-argument factory for handler injection.

        When a handler parameter's annotation is *annotation*, the
        invoker calls *factory* and passes the result.
        """
        if not callable(factory):
            msg = f"Provider for {annotation!r} is not callable: {factory!r}"
            raise TypeError(msg)
        self._providers[annotation] = factory

    @property
    def providers(self) -> dict[Any, Callable[[], Any]]:
        return dict(self._providers)

    def __repr__(self) -> str:
        return (
            f"Services(debug={self.debug!r}, cache_directory={self.cache_directory!r}, "
            f"values={sorted(self._values)!r})"
        )


Factory = Callable[[Services], Any]


class Registry:
    """Configuration key -> factory taking ``Services``."""

    __slots__ = ("_factories",)

    def __init__(self) -> None:
        self._factories: dict[str, Factory] = {}

    def register(self, key: str, factory: Factory) -> None:
        """Register *factory* under *key*. A later registration replaces it."""
        if not callable(factory):
            msg = f"Factory for {key!r} is not callable: {factory!r}"
            raise TypeError(msg)
        self._factories[key] = factory

    def resolve(self, key: str, services: Services) -> Any:
        """Build the object registered under *key*."""
        factory = self._factories.get(key)
        if factory is None:
            known = ", ".join(sorted(self._factories)) or "none"
            msg = f"Nothing registered under {key!r} (registered: {known})."
            raise ConfigurationError(msg)
        return factory(services)

    def __contains__(self, key: object) -> bool:
        return key in self._factories

    def keys(self) -> list[str]:
        return sorted(self._factories)
