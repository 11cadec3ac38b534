"""Wren: an event-driven request kernel.

Turns one HTTP request into exactly one response through a fixed
sequence of events, routing to handlers discovered from directories of
plain Python modules.

Basic usage::

    from wren import Kernel, KernelConfig, Registry, Request
    from wren.subscribers import register_defaults

    kernel = Kernel(
        KernelConfig(route_discovery={"app.handlers": "app/handlers"}, debug=True,
                     subscribers=("negotiate", "http_errors")),
        registry=register_defaults(Registry()),
    )

    response = await kernel.process_request(Request.build("GET", "/health"))

Handlers declare their routes::

    from wren import route

    @route("/health")
    def health():
        return "ok"
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "EventDispatcher",
    "HTTPError",
    "InvocationError",
    "Kernel",
    "KernelConfig",
    "KernelEvents",
    "MethodNotAllowed",
    "NotFound",
    "Redirect",
    "Registry",
    "Request",
    "Response",
    "RoutingError",
    "Services",
    "WrenError",
    "controller",
    "route",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wren`` fast while providing a clean top-level API.
    """
    if name == "Kernel":
        from wren.kernel import Kernel

        return Kernel

    if name == "KernelConfig":
        from wren.config import KernelConfig

        return KernelConfig

    if name == "Request":
        from wren.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from wren.http import response as _resp

        return getattr(_resp, name)

    if name == "KernelEvents":
        from wren.events import KernelEvents

        return KernelEvents

    if name == "EventDispatcher":
        from wren.bus import EventDispatcher

        return EventDispatcher

    if name in ("Registry", "Services"):
        from wren import services as _services

        return getattr(_services, name)

    if name in ("controller", "route"):
        from wren.routing import reader as _reader

        return getattr(_reader, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "InvocationError",
        "MethodNotAllowed",
        "NotFound",
        "RoutingError",
        "WrenError",
    ):
        from wren import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
