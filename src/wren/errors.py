"""Wren exception hierarchy.

Shared across the route table, discovery, invoker, and kernel so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when kernel configuration is invalid.

    Always raised while the kernel is being constructed or started,
    before any request reaches the EXCEPTION topic.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    The kernel never turns these into responses on its own; an EXCEPTION
    listener such as ``HTTPErrorResponder`` does.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class RoutingError(HTTPError):
    """No route could serve the request."""


class NotFound(RoutingError):  # noqa: N818
    """404: no route matched the request method and path."""

    def __init__(self, method: str, path: str, detail: str = "") -> None:
        super().__init__(
            status=404,
            detail=detail or f"No route found for '{method} {path}'.",
        )


class MethodNotAllowed(RoutingError):  # noqa: N818
    """405: the path exists but not for this HTTP method.

    Carries an ``Allow`` header listing the valid methods.
    """

    def __init__(self, method: str, path: str, allowed: frozenset[str]) -> None:
        allow_value = ", ".join(sorted(allowed))
        super().__init__(
            status=405,
            detail=f"Method {method} not allowed for '{path}'. Allowed methods: {allow_value}",
            headers=(("Allow", allow_value),),
        )


class InvocationError(WrenError):
    """A handler could not be called, or broke the response contract.

    Raised when the handler or action is missing, when arguments cannot
    be bound, or when a handler result is not a response and no VIEW
    listener converted it. ``missing_return`` is True when the handler
    returned ``None``.
    """

    def __init__(self, message: str, *, missing_return: bool = False) -> None:
        super().__init__(message)
        self.missing_return = missing_return
