"""In-process ASGI client for exercising a ``Kernel`` in tests.

Requests go through ``Kernel.__call__`` exactly as a server would send
them, and come back as the production ``Response`` type::

    async with TestClient(kernel) as client:
        response = await client.get("/ping")
        assert response.text == "pong"

Entering the context runs lifespan startup, so discovery errors fail the
``async with`` instead of the first request. Leaving it runs shutdown.
"""

from __future__ import annotations

import asyncio
import json as json_module
from collections.abc import Mapping
from typing import Any

from wren.http.response import Response
from wren.kernel import Kernel

_DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"

# Recomputed or carried elsewhere on the rebuilt Response
_DROPPED_HEADERS = frozenset({"content-length", "content-type", "set-cookie"})


class TestClient:
    """Drive a kernel through ASGI lifespan and HTTP scopes."""

    __test__ = False  # Tell pytest this is not a test class

    __slots__ = ("_lifespan", "_to_kernel", "_from_kernel", "kernel")

    def __init__(self, kernel: Kernel) -> None:
        self.kernel = kernel
        self._lifespan: asyncio.Task[None] | None = None
        self._to_kernel: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._from_kernel: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    async def __aenter__(self) -> TestClient:
        self._lifespan = asyncio.create_task(
            self.kernel(
                {"type": "lifespan", "asgi": {"version": "3.0"}},
                self._to_kernel.get,
                self._from_kernel.put,
            )
        )
        reply = await self._lifespan_step("lifespan.startup")
        if reply["type"] == "lifespan.startup.failed":
            await self._lifespan
            msg = f"Kernel startup failed: {reply.get('message', '')}"
            raise RuntimeError(msg)
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._lifespan is None or self._lifespan.done():
            return
        await self._lifespan_step("lifespan.shutdown")
        await self._lifespan

    async def _lifespan_step(self, message_type: str) -> dict[str, Any]:
        await self._to_kernel.put({"type": message_type})
        return await self._from_kernel.get()

    # -- Requests --

    async def get(self, path: str, *, headers: Mapping[str, str] | None = None) -> Response:
        return await self.request("GET", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
        json: Any = None,
    ) -> Response:
        """POST *body*, or *json* encoded with an ``application/json`` type."""
        if json is not None:
            body = json_module.dumps(json).encode("utf-8")
            headers = {"content-type": "application/json", **(headers or {})}
        return await self.request("POST", path, headers=headers, body=body)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Response:
        """Send one request through the kernel and rebuild its response."""
        pending = [{"type": "http.request", "body": body, "more_body": False}]

        async def receive() -> dict[str, Any]:
            return pending.pop() if pending else {"type": "http.disconnect"}

        sent: list[dict[str, Any]] = []

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await self.kernel(_http_scope(method, path, headers or {}), receive, send)
        return _collect(sent)


def _http_scope(method: str, path: str, headers: Mapping[str, str]) -> dict[str, Any]:
    path, _, query = path.partition("?")
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query.encode("latin-1"),
        "root_path": "",
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in headers.items()
        ],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 0),
    }


def _collect(messages: list[dict[str, Any]]) -> Response:
    """Fold ``http.response.*`` messages back into a Response."""
    start = next(m for m in messages if m["type"] == "http.response.start")
    raw = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in start.get("headers", [])]
    content_type = next((v for k, v in raw if k == "content-type"), _DEFAULT_CONTENT_TYPE)
    return Response(
        body=b"".join(m.get("body", b"") for m in messages if m["type"] == "http.response.body"),
        status=start["status"],
        content_type=content_type,
        headers=tuple((k, v) for k, v in raw if k not in _DROPPED_HEADERS),
    )
