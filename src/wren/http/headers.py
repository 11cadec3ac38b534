"""Immutable, case-insensitive HTTP headers.

Built from the raw byte pairs of an ASGI scope. Names are lowered and
decoded once at construction; lookups never re-encode.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``headers["Content-Type"]`` returns the first value, ``get_list``
    returns every value sent under one name.
    """

    __slots__ = ("_items", "_raw")

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        raw = tuple(raw)
        items = tuple(
            (name.decode("latin-1").lower(), value.decode("latin-1")) for name, value in raw
        )
        object.__setattr__(self, "_raw", raw)
        object.__setattr__(self, "_items", items)

    @classmethod
    def from_dict(cls, headers: Mapping[str, str] | None) -> Headers:
        """Build headers from a plain ``{name: value}`` mapping."""
        pairs = (
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        )
        return cls(pairs)

    def __getitem__(self, key: str) -> str:
        wanted = key.lower()
        for name, value in self._items:
            if name == wanted:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        wanted = key.lower()
        return any(name == wanted for name, _ in self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._items))

    def __len__(self) -> int:
        return len({name for name, _ in self._items})

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return every value sent for *key*."""
        wanted = key.lower()
        return [value for name, value in self._items if name == wanted]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """The original byte pairs, for ASGI round-trips."""
        return self._raw
