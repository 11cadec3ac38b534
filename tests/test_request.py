"""Tests for wren.http.request: frozen Request with async body access."""

import dataclasses

import pytest

from wren.http.request import Request


def _make_scope(**overrides: object) -> dict[str, object]:
    """Build a minimal valid ASGI HTTP scope."""
    base: dict[str, object] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": [],
        "server": ("localhost", 8000),
        "client": ("127.0.0.1", 54321),
    }
    base.update(overrides)
    return base


def _make_receive(*bodies: bytes):
    """Create an ASGI receive callable that yields bodies."""
    messages = []
    for i, body in enumerate(bodies):
        is_last = i == len(bodies) - 1
        messages.append({"type": "http.request", "body": body, "more_body": not is_last})
    if not messages:
        messages.append({"type": "http.request", "body": b"", "more_body": False})
    it = iter(messages)

    async def receive():
        return next(it)

    return receive


class TestRequestFromASGI:
    def test_basic_fields(self) -> None:
        req = Request.from_asgi(_make_scope(method="post", path="/users"), _make_receive())

        assert req.method == "POST"
        assert req.path == "/users"
        assert req.http_version == "1.1"
        assert req.server == ("localhost", 8000)
        assert req.client == ("127.0.0.1", 54321)
        assert req.path_params == {}
        assert req.form_params == {}

    def test_headers_query_and_cookies(self) -> None:
        scope = _make_scope(
            headers=[(b"content-type", b"application/json"), (b"cookie", b"sid=abc")],
            query_string=b"q=hello",
        )
        req = Request.from_asgi(scope, _make_receive())

        assert req.headers["content-type"] == "application/json"
        assert req.query["q"] == "hello"
        assert req.cookies == {"sid": "abc"}
        assert req.url == "/?q=hello"

    def test_frozen(self) -> None:
        req = Request.from_asgi(_make_scope(), _make_receive())
        with pytest.raises(dataclasses.FrozenInstanceError):
            req.method = "POST"  # type: ignore[misc]


class TestContentType:
    @pytest.mark.parametrize(
        ("content_type", "is_json", "is_form"),
        [
            ("application/json", True, False),
            ("application/json; charset=utf-8", True, False),
            ("application/x-www-form-urlencoded", False, True),
            ("multipart/form-data; boundary=x", False, True),
            ("text/plain", False, False),
        ],
    )
    def test_flags(self, content_type: str, is_json: bool, is_form: bool) -> None:
        req = Request.build("POST", "/", headers={"Content-Type": content_type})
        assert req.is_json is is_json
        assert req.is_form is is_form

    def test_missing_content_type(self) -> None:
        req = Request.build("POST", "/")
        assert req.content_type is None
        assert req.is_json is False


class TestBody:
    @pytest.mark.asyncio
    async def test_chunks_joined_and_cached(self) -> None:
        req = Request.from_asgi(_make_scope(), _make_receive(b"hel", b"lo"))
        assert await req.body() == b"hello"
        assert await req.body() == b"hello"
        assert await req.text() == "hello"

    @pytest.mark.asyncio
    async def test_json(self) -> None:
        req = Request.build("POST", "/", body='{"a": [1, 2]}')
        assert await req.json() == {"a": [1, 2]}

    @pytest.mark.asyncio
    async def test_malformed_json_raises_value_error(self) -> None:
        req = Request.build("POST", "/", body=b"{nope")
        with pytest.raises(ValueError):
            await req.json()

    @pytest.mark.asyncio
    async def test_form(self) -> None:
        req = Request.build(
            "POST",
            "/",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=b"name=a&tag=x&tag=y",
        )
        form = await req.form()
        assert form["name"] == "a"
        assert form.get_list("tag") == ["x", "y"]
        assert await req.form() is form


class TestDerivedState:
    def test_merge_form_params(self) -> None:
        req = Request.build("POST", "/")
        req.merge_form_params({"a": 1})
        req.merge_form_params({"a": 2, "b": 3})
        assert req.form_params == {"a": 2, "b": 3}

    @pytest.mark.asyncio
    async def test_with_path_params_shares_state(self) -> None:
        req = Request.build("POST", "/users/1", body=b"payload")
        req.merge_form_params({"name": "a"})
        assert await req.body() == b"payload"

        bound = req.with_path_params({"id": "1"})

        assert bound.path_params == {"id": "1"}
        assert req.path_params == {}
        assert bound.form_params is req.form_params
        assert await bound.body() == b"payload"

    def test_build_query(self) -> None:
        req = Request.build("get", "/search", query="q=x")
        assert req.method == "GET"
        assert req.query["q"] == "x"
