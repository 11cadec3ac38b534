"""Shared fixtures: handler packages written under tmp_path."""

from __future__ import annotations

import textwrap
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from wren.bus import EventDispatcher
from wren.config import KernelConfig
from wren.events import KernelEvents
from wren.kernel import Kernel
from wren.services import Registry, Services

HANDLERS = {
    "health.py": """
        from wren import Response, route

        @route("/ping")
        def ping():
            return Response("pong")
    """,
    "users.py": """
        from wren import Request, Response, controller, route

        @controller("/users")
        class UserController:
            @route("", methods=["POST"])
            def create(self, name):
                return Response(name)

            @route("/{id:int}")
            def show(self, id: int):
                return Response(f"user {id}")

            @route("/none")
            def nothing(self):
                pass

            @route("/data")
            def data(self):
                return {"ok": True}

            @route("/boom")
            def boom(self):
                raise ValueError("boom")

            @route("/echo", methods=["GET", "PUT"])
            async def echo(self, request: Request):
                return Response(repr(sorted(request.form_params.items())))
    """,
}


class Recorder:
    """Records the topics published on a dispatcher, in order."""

    def __init__(self) -> None:
        self.topics: list[str] = []
        self.events: list[Any] = []

    def attach(self, dispatcher: EventDispatcher) -> Recorder:
        for topic in KernelEvents:
            dispatcher.subscribe(topic, self._listener(topic), priority=1000)
        return self

    def _listener(self, topic: str) -> Callable[[Any], None]:
        def listen(event: Any) -> None:
            self.topics.append(str(topic))
            self.events.append(event)

        return listen

    def count(self, topic: str) -> int:
        return self.topics.count(str(topic))


@pytest.fixture
def namespace() -> str:
    """A fresh handler namespace, so modules never collide across tests."""
    return f"app_{uuid.uuid4().hex[:8]}.handlers"


@pytest.fixture
def write_handlers(tmp_path: Path) -> Callable[..., Path]:
    """Write handler modules into a fresh directory and return it."""

    def write(files: dict[str, str], name: str = "handlers") -> Path:
        root = tmp_path / name
        for relative, source in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(source), encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return write


@pytest.fixture
def handlers_dir(write_handlers: Callable[..., Path]) -> Path:
    return write_handlers(HANDLERS)


@pytest.fixture
def make_kernel(
    namespace: str, handlers_dir: Path, tmp_path: Path
) -> Callable[..., Kernel]:
    """Build a kernel over the standard handlers."""

    def make(
        *,
        subscribers: tuple[str, ...] = (),
        registry: Registry | None = None,
        services: Services | None = None,
        debug: bool = True,
        **kwargs: Any,
    ) -> Kernel:
        config = KernelConfig(
            route_discovery={namespace: handlers_dir},
            subscribers=subscribers,
            debug=debug,
            cache_directory=None if debug else tmp_path / "cache",
        )
        return Kernel(config, services, registry, **kwargs)

    return make


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
