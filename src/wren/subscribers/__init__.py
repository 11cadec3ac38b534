"""Bundled kernel subscribers.

None of these are registered automatically. Add them to a registry and
name them in ``KernelConfig.subscribers``::

    registry = Registry()
    register_defaults(registry)
    config = KernelConfig(..., subscribers=("negotiate", "http_errors"))
"""

from wren.services import Registry
from wren.subscribers.errors import HTTPErrorResponder
from wren.subscribers.negotiation import ViewNegotiator, negotiate
from wren.subscribers.security_headers import SecurityHeaders, SecurityHeadersConfig


def register_defaults(registry: Registry) -> Registry:
    """Register the bundled subscribers under their configuration keys."""
    registry.register("negotiate", lambda services: ViewNegotiator())
    registry.register("http_errors", lambda services: HTTPErrorResponder())
    registry.register("security_headers", lambda services: SecurityHeaders())
    return registry


__all__ = [
    "HTTPErrorResponder",
    "SecurityHeaders",
    "SecurityHeadersConfig",
    "ViewNegotiator",
    "negotiate",
    "register_defaults",
]
