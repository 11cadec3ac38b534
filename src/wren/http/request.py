"""Immutable HTTP request.

Frozen metadata with async body access. The only mutable state is the
derived ``form_params`` dict (filled from a JSON body before dispatch)
and the private body cache.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from wren._internal.asgi import Receive
from wren.http.cookies import parse_cookies
from wren.http.headers import Headers
from wren.http.query import QueryParams

if TYPE_CHECKING:
    from wren.http.forms import FormData


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata is frozen at creation. The body is read through
    ``body()``, ``json()``, ``text()`` and ``form()``, consumed from the
    transport once and cached.

    ``form_params`` holds parameters merged into the request before
    dispatch, e.g. the top-level keys of a JSON body. The dict itself is
    mutable even though the field reference is frozen.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    _receive: Receive

    form_params: dict[str, Any] = field(default_factory=dict, compare=False)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def is_json(self) -> bool:
        """True if the Content-Type announces a JSON body."""
        return (self.content_type or "").lower().startswith("application/json")

    @property
    def is_form(self) -> bool:
        """True if the Content-Type announces a url-encoded or multipart body."""
        ct = (self.content_type or "").lower()
        return ct.startswith(("application/x-www-form-urlencoded", "multipart/form-data"))

    @property
    def url(self) -> str:
        """Path plus query string."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    def merge_form_params(self, data: Mapping[str, Any]) -> None:
        """Merge *data* into ``form_params``; later keys overwrite earlier ones."""
        self.form_params.update(data)

    def with_path_params(self, path_params: Mapping[str, str]) -> Request:
        """Return a copy bound to *path_params*.

        The copy shares the body cache and ``form_params`` with this
        request, so a body read once is never read again.
        """
        return replace(self, path_params=dict(path_params))

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body (cached after the first call)."""
        if "_body" not in self._cache:
            self._cache["_body"] = b"".join([chunk async for chunk in self.stream()])
        return self._cache["_body"]

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks straight from the transport."""
        while True:
            message = await self._receive()
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as UTF-8 text."""
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON.

        Raises ``ValueError`` (``json.JSONDecodeError``) on malformed input.
        """
        return json.loads(await self.body())

    async def form(self) -> FormData:
        """Parse the body as url-encoded or multipart form data (cached)."""
        if "_form" not in self._cache:
            from wren.http.forms import parse_form_data

            ct = self.content_type or "application/x-www-form-urlencoded"
            self._cache["_form"] = await parse_form_data(await self.body(), ct)
        return self._cache["_form"]

    # -- Factories --

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI HTTP scope and receive callable."""
        headers = Headers(scope.get("headers", ()))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            path_params={},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
        )

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes | str = b"",
        query: bytes | str = b"",
    ) -> Request:
        """Create a Request without a transport.

        Used when embedding the kernel behind something other than ASGI,
        and in tests::

            request = Request.build(
                "POST", "/users",
                headers={"Content-Type": "application/json"},
                body=b'{"name": "a"}',
            )
        """
        payload = body.encode("utf-8") if isinstance(body, str) else body
        sent = False

        async def receive() -> dict[str, Any]:
            nonlocal sent
            if sent:
                return {"type": "http.disconnect"}
            sent = True
            return {"type": "http.request", "body": payload, "more_body": False}

        header_obj = Headers.from_dict(headers)
        return cls(
            method=method.upper(),
            path=path,
            headers=header_obj,
            query=QueryParams(query),
            path_params={},
            http_version="1.1",
            server=None,
            client=None,
            cookies=parse_cookies(header_obj.get("cookie", "")),
            _receive=receive,
        )
