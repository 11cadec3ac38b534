"""Kernel lifecycle events.

One event class per lifecycle topic. Listeners receive the event for
the duration of a single ``publish`` call and mutate it in place; the
kernel reads the result back once the publish returns.

Topics, in lifecycle order::

    REQUEST -> (VIEW) -> RESPONSE -> FINISH
                 EXCEPTION on failure

Setting a response on ``RequestEvent``, ``ControllerResultEvent`` or
``ExceptionEvent`` stops propagation: listeners registered after the one
that answered are skipped. ``ResponseEvent`` lets every listener see and
replace the response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from wren.http.request import Request
from wren.http.response import Response

if TYPE_CHECKING:
    from wren.kernel import Kernel


class KernelEvents(StrEnum):
    """Topic names published by the kernel."""

    REQUEST = "kernel.request"
    VIEW = "kernel.view"
    RESPONSE = "kernel.response"
    FINISH = "kernel.finish_request"
    EXCEPTION = "kernel.exception"


@dataclass(slots=True)
class KernelEvent:
    """Base event: correlates the kernel with the request being handled."""

    kernel: Kernel
    request: Request
    _propagation_stopped: bool = field(default=False, init=False, repr=False)

    @property
    def is_propagation_stopped(self) -> bool:
        return self._propagation_stopped

    def stop_propagation(self) -> None:
        """Skip the remaining listeners for the current topic."""
        self._propagation_stopped = True


@dataclass(slots=True)
class _ResponseSlot(KernelEvent):
    """An event that a listener may answer with a Response."""

    _response: Response | None = field(default=None, init=False, repr=False)

    @property
    def response(self) -> Response | None:
        return self._response

    @property
    def has_response(self) -> bool:
        return self._response is not None

    def set_response(self, response: Response) -> None:
        """Answer the request and stop propagation."""
        self._response = response
        self.stop_propagation()


@dataclass(slots=True)
class RequestEvent(_ResponseSlot):
    """Published on REQUEST, before routing.

    A response set here skips routing and dispatch entirely; the kernel
    goes straight to RESPONSE filtering.
    """


@dataclass(slots=True)
class ControllerResultEvent(_ResponseSlot):
    """Published on VIEW when a handler returned something other than a Response."""

    controller_result: Any = None


@dataclass(slots=True)
class ExceptionEvent(_ResponseSlot):
    """Published on EXCEPTION with the error that aborted the request.

    Listeners may replace ``exception`` (redact, wrap, reclassify) or
    recover by setting a response.
    """

    exception: BaseException | None = None


@dataclass(slots=True)
class ResponseEvent(KernelEvent):
    """Published on RESPONSE with the response about to be returned."""

    response: Response | None = None

    def set_response(self, response: Response) -> None:
        """Replace the response. Later listeners see the replacement."""
        self.response = response


@dataclass(slots=True)
class FinishEvent(KernelEvent):
    """Published on FINISH once per request, on every exit path.

    Informational only; nothing a listener does here changes the outcome.
    Listeners here are expected not to raise: an error escapes to the
    caller of the kernel unmodified.
    """
