"""Request lifecycle kernel.

Turns one request into exactly one response by publishing a fixed
sequence of events around routing and handler invocation::

    REQUEST ──(response set)──────────────────────────┐
       │                                              │
    route match ─> invoke handler ─> VIEW (if needed) │
                                         │            │
                                      RESPONSE <──────┘
                                         │
                                       FINISH

Anything raised between REQUEST and RESPONSE is published once on
EXCEPTION. A listener there may recover with a response (which is then
filtered through RESPONSE) or leave the error to propagate.

FINISH is published exactly once per request that reaches REQUEST.
Route discovery runs before that, so configuration errors never reach
EXCEPTION listeners.

Free-threading safety:
    - The route table is discovered and compiled once, behind a Lock
      with a double-checked flag, and is read-only afterward
    - The dispatcher is fully populated in the constructor
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any

from wren._internal.asgi import Receive, Scope, Send
from wren.bus import EventDispatcher
from wren.config import KernelConfig
from wren.errors import ConfigurationError, InvocationError
from wren.events import (
    ControllerResultEvent,
    ExceptionEvent,
    FinishEvent,
    KernelEvents,
    RequestEvent,
    ResponseEvent,
)
from wren.http.request import Request
from wren.http.response import Response
from wren.invoker import HandlerInvoker
from wren.routing.cache import FileRouteCache, MemoryRouteCache, RouteCache
from wren.routing.discovery import RouteDiscovery
from wren.routing.reader import DecoratorRouteReader, RouteReader
from wren.routing.table import RouteTable
from wren.sender import send_response
from wren.services import Registry, Services

logger = logging.getLogger("wren.kernel")


class Kernel:
    """The request-handling kernel.

    Usage::

        registry = Registry()
        register_defaults(registry)

        kernel = Kernel(
            KernelConfig(
                route_discovery={"app.handlers": "app/handlers"},
                subscribers=("negotiate", "http_errors"),
                debug=True,
            ),
            registry=registry,
        )

        response = await kernel.process_request(Request.build("GET", "/health"))

    The kernel is also an ASGI 3 application.
    """

    __slots__ = (
        "_config",
        "_discovery",
        "_dispatcher",
        "_invoker",
        "_route_cache",
        "_route_reader",
        "_route_table",
        "_routes_lock",
        "_services",
    )

    def __init__(
        self,
        config: KernelConfig | Mapping[str, Any],
        services: Services | None = None,
        registry: Registry | None = None,
        *,
        route_reader: RouteReader | None = None,
        route_cache: RouteCache | None = None,
    ) -> None:
        if not isinstance(config, KernelConfig):
            config = KernelConfig.from_mapping(config)
        self._config = config

        if services is None:
            services = Services()
        services.debug = config.debug
        services.cache_directory = config.cache_directory
        self._services = services

        registry = registry if registry is not None else Registry()
        self._dispatcher = EventDispatcher()
        for key in config.subscribers:
            self._dispatcher.add_subscriber(registry.resolve(key, services))

        if config.user_provider is not None:
            services.user_provider = registry.resolve(config.user_provider, services)

        self._route_reader = route_reader if route_reader is not None else DecoratorRouteReader()
        if route_cache is None:
            route_cache = self._default_cache(config)
        self._route_cache = route_cache

        self._invoker = HandlerInvoker(config.route_discovery, services)
        self._discovery: RouteDiscovery | None = None
        self._route_table: RouteTable | None = None
        self._routes_lock = threading.Lock()

    @staticmethod
    def _default_cache(config: KernelConfig) -> RouteCache:
        if config.debug:
            return MemoryRouteCache()
        if config.cache_directory is None:
            msg = "`cache_directory` is required when debug is False."
            raise ConfigurationError(msg)
        return FileRouteCache(config.cache_directory)

    # -- Accessors --

    @property
    def config(self) -> KernelConfig:
        return self._config

    @property
    def services(self) -> Services:
        return self._services

    @property
    def debug(self) -> bool:
        return self._config.debug

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    @property
    def route_cache(self) -> RouteCache:
        return self._route_cache

    @property
    def route_table(self) -> RouteTable:
        """The compiled route table, discovered on first access."""
        return self._ensure_routes()

    @property
    def discovery(self) -> RouteDiscovery | None:
        """The discovery that built the route table, once it has run."""
        return self._discovery

    # -- Request lifecycle --

    async def process_request(self, request: Request) -> Response:
        """Run the full lifecycle for *request* and return the final response.

        The route table is built before REQUEST is published, so a
        discovery ``ConfigurationError`` reaches the caller directly and
        never passes through EXCEPTION.
        """
        self._ensure_routes()
        await self._merge_json_body(request)

        try:
            response = await self._handle_raw(request)
        except Exception as exc:
            return await self._handle_exception(exc, request)

        await self._finish(request)
        return response

    async def handle(self, request: Request, send: Send) -> Response:
        """Process *request* and send the response through ASGI *send*."""
        response = await self.process_request(request)
        await send_response(response, send)
        return response

    async def _merge_json_body(self, request: Request) -> None:
        if request.method == "GET" or not request.is_json:
            return
        try:
            data = await request.json()
        except ValueError:
            logger.debug("Ignoring malformed JSON body for %s %s", request.method, request.path)
            return
        if isinstance(data, dict):
            request.merge_form_params(data)

    async def _handle_raw(self, request: Request) -> Response:
        event = await self._dispatcher.publish(RequestEvent(self, request), KernelEvents.REQUEST)
        if event.response is not None:
            return await self._filter_response(event.response, request)

        match = self.route_table.match(request.method, request.path)
        logger.debug("%s %s matched %s", request.method, request.path, match.route.handler)

        result = await self._invoker.invoke(match, request)
        if isinstance(result, Response):
            return await self._filter_response(result, request)

        view = await self._dispatcher.publish(
            ControllerResultEvent(self, request, controller_result=result),
            KernelEvents.VIEW,
        )
        if view.response is None:
            msg = "The controller must return a response."
            missing = view.controller_result is None
            if missing:
                msg += " Did you forget to add a return statement somewhere in your controller?"
            raise InvocationError(msg, missing_return=missing)
        return await self._filter_response(view.response, request)

    async def _handle_exception(self, exc: Exception, request: Request) -> Response:
        event = await self._dispatcher.publish(
            ExceptionEvent(self, request, exception=exc),
            KernelEvents.EXCEPTION,
        )
        # Listeners may have replaced the exception.
        error = event.exception if event.exception is not None else exc

        if event.response is None:
            await self._finish(request)
            if error is exc:
                raise exc
            raise error from exc

        response = event.response
        try:
            response = await self._filter_response(response, request)
        except Exception:
            # The recovered response is still returned, unfiltered.
            logger.warning(
                "RESPONSE listener failed while filtering an error response for %s %s",
                request.method,
                request.path,
                exc_info=True,
            )
        await self._finish(request)
        return response

    async def _filter_response(self, response: Response, request: Request) -> Response:
        event = await self._dispatcher.publish(
            ResponseEvent(self, request, response=response),
            KernelEvents.RESPONSE,
        )
        return event.response if event.response is not None else response

    async def _finish(self, request: Request) -> None:
        await self._dispatcher.publish(FinishEvent(self, request), KernelEvents.FINISH)

    # -- Routes --

    def _ensure_routes(self) -> RouteTable:
        """Thread-safe discovery with double-check locking."""
        table = self._route_table
        if table is not None:
            return table
        with self._routes_lock:
            if self._route_table is None:
                self._route_table = self._build_routes()
            return self._route_table

    def _build_routes(self) -> RouteTable:
        """Discover every configured namespace and compile the table.

        MUST only be called while holding _routes_lock.
        """
        table = RouteTable()
        discovery = RouteDiscovery(
            table,
            self._route_reader,
            self._route_cache,
            debug=self._config.debug,
        )
        for namespace, directory in self._config.route_discovery.items():
            discovery.discover(namespace, directory)
        table.compile()
        self._discovery = discovery
        logger.debug("Route table compiled with %d routes", len(table))
        return table

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return
        await self.handle(Request.from_asgi(scope, receive), send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Build the route table at startup so the first request does not."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_routes()
                except Exception as exc:
                    logger.exception("Kernel startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
