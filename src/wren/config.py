"""Kernel configuration.

KernelConfig is a frozen dataclass, immutable after creation and
validated up front, so a broken discovery map fails at startup instead
of on the first request.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any

from wren.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class KernelConfig:
    """Kernel configuration. Immutable after creation.

    Only ``route_discovery`` is required::

        config = KernelConfig(
            route_discovery={"shop.controllers": "src/shop/controllers"},
            subscribers=("negotiate", "http_errors"),
            cache_directory="var/cache",
        )
    """

    # Namespace -> directory holding handler modules
    route_discovery: Mapping[str, str | Path]

    # Registry keys, registered on the dispatcher in this order
    subscribers: tuple[str, ...] = ()

    # Registry key of the identity service factory
    user_provider: str | None = None

    # Development mode: re-scan routes on every start, keep caches in memory
    debug: bool = False

    # Where discovered route tables are persisted when debug is False
    cache_directory: str | Path | None = None

    def __post_init__(self) -> None:
        discovery = self.route_discovery
        if not isinstance(discovery, Mapping) or not discovery:
            msg = (
                "`route_discovery` is missing or invalid: expected a non-empty "
                "mapping of namespace to directory."
            )
            raise ConfigurationError(msg)
        for namespace, directory in discovery.items():
            if not isinstance(namespace, str) or not namespace:
                msg = f"`route_discovery` namespace must be a non-empty string, got {namespace!r}."
                raise ConfigurationError(msg)
            if not isinstance(directory, (str, Path)):
                msg = (
                    f"`route_discovery` directory for {namespace!r} must be a path, "
                    f"got {type(directory).__name__}."
                )
                raise ConfigurationError(msg)
        object.__setattr__(self, "route_discovery", MappingProxyType(dict(discovery)))

        if isinstance(self.subscribers, str):
            msg = "`subscribers` must be a sequence of registry keys, not a string."
            raise ConfigurationError(msg)
        object.__setattr__(self, "subscribers", tuple(self.subscribers))

        if not self.debug and self.cache_directory is None:
            msg = "`cache_directory` is required when debug is False."
            raise ConfigurationError(msg)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> KernelConfig:
        """Build a config from plain data (e.g. a parsed settings file).

        Unknown keys are rejected rather than silently ignored.
        """
        if not isinstance(data, Mapping):
            msg = f"Kernel configuration must be a mapping, got {type(data).__name__}."
            raise ConfigurationError(msg)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            msg = f"Unknown kernel configuration keys: {', '.join(unknown)}"
            raise ConfigurationError(msg)
        if "route_discovery" not in data:
            msg = "`route_discovery` is missing from the kernel configuration."
            raise ConfigurationError(msg)
        return cls(**data)
