"""Handler invoker: resolve a matched route to a callable and call it.

Handlers live in the modules discovery scanned. A ``HandlerRef`` names
the namespace, module, optional controller class and action; the
invoker imports the module (reusing the one discovery already loaded),
builds the controller for this request, binds arguments from the
request by signature, and calls the action.

Argument resolution order, per parameter:

1. ``request`` (by name or ``Request`` annotation)
2. ``services`` (by name or ``Services`` annotation)
3. Path parameters (converted by route type, then by annotation)
4. ``request.form_params`` (e.g. keys of a JSON body)
5. Form fields and uploaded files (non-GET form requests)
6. Query string parameters
7. Service providers (by annotation via ``Services.provide()``)

A parameter with a default may stay unbound; one without raises
``InvocationError``.
"""

import inspect
from collections.abc import Callable, Mapping
from pathlib import Path
from types import ModuleType
from typing import Any

from wren._internal.invoke import invoke
from wren.errors import InvocationError
from wren.http.request import Request
from wren.routing.discovery import load_module
from wren.routing.params import coerce, convert_param
from wren.routing.route import HandlerRef, RouteMatch
from wren.routing.table import parse_path
from wren.services import Services

_EMPTY = inspect.Parameter.empty
_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class HandlerInvoker:
    """Calls route handlers with arguments bound from the request.

    Args:
        sources: Namespace -> directory, as configured for discovery.
        services: Passed to controllers and handlers that ask for it.
    """

    __slots__ = ("_services", "_sources")

    def __init__(self, sources: Mapping[str, str | Path], services: Services) -> None:
        self._sources = sources
        self._services = services

    async def invoke(self, match: RouteMatch, request: Request) -> Any:
        """Call the handler for *match* and return its raw result."""
        ref = match.route.handler
        action = self.resolve(ref)
        request = request.with_path_params(match.path_params)
        kwargs = await self._bind(action, ref, match, request)
        return await invoke(action, **kwargs)

    def resolve(self, ref: HandlerRef) -> Callable[..., Any]:
        """Return the callable *ref* points at, building its controller."""
        module = self._module(ref)
        owner: Any = module
        if ref.controller is not None:
            cls = getattr(module, ref.controller, None)
            if not inspect.isclass(cls):
                msg = f"Controller {ref.controller!r} not found in module {ref.module_name!r}."
                raise InvocationError(msg)
            owner = self._instantiate(cls)

        action = getattr(owner, ref.action, None)
        if action is None or not callable(action):
            msg = f"Action {ref.action!r} not found on handler {ref.handler!r} ({ref})."
            raise InvocationError(msg)
        return action

    def _module(self, ref: HandlerRef) -> ModuleType:
        directory = self._sources.get(ref.namespace)
        if directory is None:
            msg = f"No handler directory configured for namespace {ref.namespace!r}."
            raise InvocationError(msg)
        try:
            return load_module(ref.namespace, directory, ref.module)
        except ImportError as exc:
            if exc.name != ref.module_name:
                raise
            msg = f"Handler module {ref.module_name!r} could not be loaded: {exc}"
            raise InvocationError(msg) from exc

    def _instantiate(self, cls: type) -> Any:
        try:
            params = inspect.signature(cls).parameters
        except (TypeError, ValueError):
            return cls()
        for name, param in params.items():
            if name == "services" or param.annotation is Services:
                return cls(**{name: self._services})
        return cls()

    async def _bind(
        self,
        action: Callable[..., Any],
        ref: HandlerRef,
        match: RouteMatch,
        request: Request,
    ) -> dict[str, Any]:
        sig = inspect.signature(action, eval_str=True)
        path_types = {
            seg.param_name: seg.param_type for seg in parse_path(match.route.path) if seg.is_param
        }
        providers = self._services.providers
        form = None
        kwargs: dict[str, Any] = {}

        for name, param in sig.parameters.items():
            if param.kind in _SKIPPED_KINDS:
                continue
            annotation = param.annotation

            if name == "request" or annotation is Request:
                kwargs[name] = request
            elif name == "services" or annotation is Services:
                kwargs[name] = self._services
            elif name in match.path_params:
                value = match.path_params[name]
                try:
                    converted = convert_param(value, path_types.get(name, "str"))
                except ValueError as exc:
                    msg = f"Invalid value {value!r} for path parameter {name!r} of {ref}."
                    raise InvocationError(msg) from exc
                kwargs[name] = _coerce(name, converted, annotation, ref)
            elif name in request.form_params:
                kwargs[name] = _coerce(name, request.form_params[name], annotation, ref)
            else:
                if form is None and request.is_form and request.method != "GET":
                    form = await request.form()
                if form is not None and name in form.files:
                    kwargs[name] = form.files[name]
                elif form is not None and name in form:
                    kwargs[name] = _coerce(name, form[name], annotation, ref)
                elif name in request.query:
                    kwargs[name] = _coerce(name, request.query[name], annotation, ref)
                elif annotation is not _EMPTY and annotation in providers:
                    kwargs[name] = providers[annotation]()
                elif param.default is _EMPTY:
                    msg = f"Missing required parameter {name!r} for {ref}."
                    raise InvocationError(msg)

        return kwargs


def _coerce(name: str, value: Any, annotation: Any, ref: HandlerRef) -> Any:
    try:
        return coerce(value, annotation)
    except ValueError as exc:
        msg = f"Invalid value {value!r} for parameter {name!r} of {ref}: expected {annotation.__name__}."
        raise InvocationError(msg) from exc
