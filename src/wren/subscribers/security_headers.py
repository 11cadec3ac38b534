"""Security headers: X-Frame-Options, X-Content-Type-Options, Referrer-Policy.

Adds common security headers to HTML responses (clickjacking, MIME
sniffing, referrer leakage). JSON, files and other non-HTML content
types are left untouched.
"""

from dataclasses import dataclass
from typing import Any

from wren.events import KernelEvents, ResponseEvent
from wren.http.response import Response


@dataclass(frozen=True, slots=True)
class SecurityHeadersConfig:
    """Configuration for security headers.

    All values are applied as-is. Use standard header values.
    """

    x_frame_options: str = "DENY"
    x_content_type_options: str = "nosniff"
    referrer_policy: str = "strict-origin-when-cross-origin"
    content_security_policy: str | None = (
        "default-src 'self'; base-uri 'self'; frame-ancestors 'none'; object-src 'none'"
    )
    strict_transport_security: str | None = None


def _add_headers(response: Response, config: SecurityHeadersConfig) -> Response:
    secured = (
        response.with_header("X-Frame-Options", config.x_frame_options)
        .with_header("X-Content-Type-Options", config.x_content_type_options)
        .with_header("Referrer-Policy", config.referrer_policy)
    )
    if config.content_security_policy:
        secured = secured.with_header("Content-Security-Policy", config.content_security_policy)
    if config.strict_transport_security:
        secured = secured.with_header(
            "Strict-Transport-Security", config.strict_transport_security
        )
    return secured


class SecurityHeaders:
    """RESPONSE listener adding security headers to HTML responses.

    Usage::

        registry.register("security_headers", lambda services: SecurityHeaders())

    Or with custom config::

        registry.register(
            "security_headers",
            lambda services: SecurityHeaders(SecurityHeadersConfig(x_frame_options="SAMEORIGIN")),
        )
    """

    __slots__ = ("config",)

    priority = -256

    def __init__(self, config: SecurityHeadersConfig | None = None) -> None:
        self.config = config or SecurityHeadersConfig()

    def subscribed_events(self) -> dict[str, Any]:
        return {KernelEvents.RESPONSE: ("on_response", self.priority)}

    def on_response(self, event: ResponseEvent) -> None:
        response = event.response
        if response is None or not response.content_type.startswith("text/html"):
            return
        if response.header("X-Frame-Options") is not None:
            return
        event.set_response(_add_headers(response, self.config))
