"""EXCEPTION listener mapping ``HTTPError`` to plain responses."""

import logging
from http import HTTPStatus
from typing import Any

from wren.errors import HTTPError
from wren.events import ExceptionEvent, KernelEvents
from wren.http.response import Response

logger = logging.getLogger("wren.server")


def _reason(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"


def error_response(exc: HTTPError) -> Response:
    """Plain-text response carrying the error's status, detail and headers."""
    body = exc.detail or _reason(exc.status)
    response = Response(body=body, status=exc.status, content_type="text/plain; charset=utf-8")
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


class HTTPErrorResponder:
    """Answer ``HTTPError`` (404, 405, ...) with its status code.

    Registered at a low priority so application listeners see the error
    first. Other exceptions are left to propagate.
    """

    priority = -128

    def subscribed_events(self) -> dict[str, Any]:
        return {KernelEvents.EXCEPTION: ("on_exception", self.priority)}

    def on_exception(self, event: ExceptionEvent) -> None:
        exc = event.exception
        if not isinstance(exc, HTTPError):
            return
        logger.debug("%s %s -> %d", event.request.method, event.request.path, exc.status)
        event.set_response(error_response(exc))
