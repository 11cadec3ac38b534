"""ASGI type aliases.

Only the adapter layer (``Kernel.__call__``, ``Request.from_asgi``, the
sender) sees these. Listeners and handlers work with Request/Response.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]
