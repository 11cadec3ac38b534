"""Content negotiation: maps handler return values to Responses.

``ViewNegotiator`` listens on VIEW and converts the plain values a
handler may return. isinstance-based dispatch, no magic, fully
predictable.
"""

import json as json_module
from collections.abc import Mapping
from typing import Any

from wren.events import ControllerResultEvent, KernelEvents
from wren.http.response import Redirect, Response


def negotiate(value: Any) -> Response | None:
    """Convert a handler return value to a Response.

    Dispatch order:

    1. ``Response``             -> pass through
    2. ``Redirect``             -> status with Location header
    3. ``str``                  -> 200, text/html
    4. ``bytes``                -> 200, application/octet-stream
    5. ``dict`` / ``list``      -> 200, application/json
    6. ``(value, int)``         -> negotiate value, override status
    7. ``(value, int, dict)``   -> negotiate value, override status + headers

    Returns None for anything else, ``None`` included.
    """
    match value:
        case Response():
            return value
        case Redirect():
            return (
                Response(body="")
                .with_status(value.status)
                .with_header("Location", value.url)
                .with_headers(dict(value.headers))
            )
        case str():
            return Response(body=value, content_type="text/html; charset=utf-8")
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case dict() | list():
            return Response(
                body=json_module.dumps(value, default=str),
                content_type="application/json; charset=utf-8",
            )
        case (inner, int() as status) if not isinstance(status, bool):
            response = negotiate(inner)
            return response.with_status(status) if response is not None else None
        case (inner, int() as status, Mapping() as headers) if not isinstance(status, bool):
            response = negotiate(inner)
            if response is None:
                return None
            return response.with_status(status).with_headers(headers)
        case _:
            return None


class ViewNegotiator:
    """VIEW listener turning plain return values into Responses.

    Values it cannot convert are left alone, so the kernel still reports
    the handler as not returning a response.
    """

    def subscribed_events(self) -> dict[str, Any]:
        return {KernelEvents.VIEW: "on_view"}

    def on_view(self, event: ControllerResultEvent) -> None:
        response = negotiate(event.controller_result)
        if response is not None:
            event.set_response(response)
