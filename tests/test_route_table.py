"""Tests for wren.routing.table: keyed route table with trie matching."""

import pytest

from wren.errors import ConfigurationError, MethodNotAllowed, NotFound, RoutingError
from wren.routing.route import HandlerRef, Route
from wren.routing.table import RouteTable, parse_path


def _route(
    path: str,
    methods: frozenset[str] | None = None,
    *,
    action: str | None = None,
    namespace: str = "app",
) -> Route:
    methods = methods or frozenset({"GET"})
    ref = HandlerRef(
        namespace=namespace,
        module="handlers",
        controller="Controller",
        action=action or f"{'_'.join(sorted(methods))}{path}",
    )
    return Route(path=path, methods=methods, handler=ref)


def _table(*routes: Route) -> RouteTable:
    table = RouteTable()
    for route in routes:
        table.add(route)
    table.compile()
    return table


class TestParsePath:
    def test_static(self) -> None:
        segments = parse_path("/users")
        assert len(segments) == 1
        assert segments[0].value == "users"
        assert segments[0].is_param is False

    def test_multi_static(self) -> None:
        segments = parse_path("/api/v2/users")
        assert [s.value for s in segments] == ["api", "v2", "users"]

    def test_param(self) -> None:
        segments = parse_path("/users/{id}")
        assert segments[1].is_param is True
        assert segments[1].param_name == "id"
        assert segments[1].param_type == "str"

    def test_typed_param(self) -> None:
        assert parse_path("/users/{id:int}")[1].param_type == "int"

    def test_root(self) -> None:
        assert parse_path("/") == []

    def test_rejects_flask_style_param(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_path("/share/<slug>")
        assert "<param>" in str(exc_info.value)
        assert "{param}" in str(exc_info.value)
        assert "/share/<slug>" in str(exc_info.value)

    def test_rejects_unknown_converter(self) -> None:
        with pytest.raises(ConfigurationError, match="uuid"):
            parse_path("/items/{id:uuid}")


class TestStaticRoutes:
    def test_root(self) -> None:
        assert _table(_route("/")).match("GET", "/").path_params == {}

    def test_nested_path(self) -> None:
        table = _table(_route("/api/v2/users"))
        assert table.match("GET", "/api/v2/users").route.path == "/api/v2/users"

    def test_multiple_routes(self) -> None:
        table = _table(_route("/users"), _route("/posts"))
        assert table.match("GET", "/users").route.path == "/users"
        assert table.match("GET", "/posts").route.path == "/posts"

    def test_trailing_slash_ignored(self) -> None:
        table = _table(_route("/users"))
        assert table.match("GET", "/users/").route.path == "/users"


class TestParams:
    def test_string_param(self) -> None:
        table = _table(_route("/users/{name}"))
        assert table.match("GET", "/users/alice").path_params == {"name": "alice"}

    def test_int_param_rejects_non_digit(self) -> None:
        table = _table(_route("/users/{id:int}"))
        assert table.match("GET", "/users/42").path_params == {"id": "42"}
        with pytest.raises(NotFound):
            table.match("GET", "/users/alice")

    def test_float_param(self) -> None:
        table = _table(_route("/price/{amount:float}"))
        assert table.match("GET", "/price/9.99").path_params == {"amount": "9.99"}

    def test_multiple_params(self) -> None:
        table = _table(_route("/users/{user_id:int}/posts/{post_id:int}"))
        match = table.match("GET", "/users/1/posts/42")
        assert match.path_params == {"user_id": "1", "post_id": "42"}

    def test_path_param(self) -> None:
        table = _table(_route("/files/{filepath:path}"))
        match = table.match("GET", "/files/docs/api/v2/index.html")
        assert match.path_params == {"filepath": "docs/api/v2/index.html"}

    def test_static_preferred_over_param(self) -> None:
        table = _table(_route("/users/me"), _route("/users/{id}"))
        assert table.match("GET", "/users/me").route.path == "/users/me"
        assert table.match("GET", "/users/42").route.path == "/users/{id}"

    def test_converters_at_same_position(self) -> None:
        table = _table(_route("/items/{id:int}"), _route("/items/{slug}"))

        number = table.match("GET", "/items/7")
        word = table.match("GET", "/items/abc")

        assert (number.route.path, number.path_params) == ("/items/{id:int}", {"id": "7"})
        assert (word.route.path, word.path_params) == ("/items/{slug}", {"slug": "abc"})

    def test_names_bound_per_route(self) -> None:
        table = _table(
            _route("/items/{id}", frozenset({"GET"})),
            _route("/items/{slug}", frozenset({"DELETE"})),
        )

        assert table.match("GET", "/items/x").path_params == {"id": "x"}
        assert table.match("DELETE", "/items/x").path_params == {"slug": "x"}

    def test_static_falls_through_by_method(self) -> None:
        table = _table(
            _route("/users/me", frozenset({"GET"})),
            _route("/users/{id}", frozenset({"DELETE"})),
        )

        assert table.match("DELETE", "/users/me").route.path == "/users/{id}"


class TestMethods:
    def test_method_filtering(self) -> None:
        table = _table(_route("/users", frozenset({"GET"})), _route("/users", frozenset({"POST"})))
        assert "GET" in table.match("GET", "/users").route.methods
        assert "POST" in table.match("POST", "/users").route.methods

    def test_method_not_allowed(self) -> None:
        table = _table(_route("/users", frozenset({"GET", "PUT"})))

        with pytest.raises(MethodNotAllowed) as exc_info:
            table.match("POST", "/users")

        err = exc_info.value
        assert isinstance(err, RoutingError)
        assert err.status == 405
        assert dict(err.headers)["Allow"] == "GET, PUT"

    def test_allow_collects_every_matching_pattern(self) -> None:
        table = _table(
            _route("/items/{id:int}", frozenset({"GET"})),
            _route("/items/{slug}", frozenset({"DELETE"})),
        )

        with pytest.raises(MethodNotAllowed) as exc_info:
            table.match("POST", "/items/7")

        assert dict(exc_info.value.headers)["Allow"] == "DELETE, GET"


class TestKeys:
    def test_same_key_last_write_wins(self) -> None:
        table = RouteTable()
        table.add(_route("/users", frozenset({"GET"}), action="index"))
        table.add(_route("/users", frozenset({"GET", "HEAD"}), action="index"))

        assert len(table) == 1
        assert table.routes[0].methods == frozenset({"GET", "HEAD"})

    def test_rediscovery_is_idempotent(self) -> None:
        routes = [_route("/a"), _route("/b")]
        table = RouteTable()
        for route in routes + routes:
            table.add(route)
        assert table.routes == routes

    def test_namespaces_kept_apart(self) -> None:
        table = RouteTable()
        table.add(_route("/a", action="index", namespace="one"))
        table.add(_route("/b", action="index", namespace="two"))
        assert len(table) == 2


class TestErrors:
    def test_not_found_names_method_and_path(self) -> None:
        table = _table(_route("/users"))

        with pytest.raises(NotFound) as exc_info:
            table.match("GET", "/health")

        assert exc_info.value.status == 404
        assert str(exc_info.value) == "404: No route found for 'GET /health'."

    def test_add_after_compile_raises(self) -> None:
        table = _table()
        with pytest.raises(RuntimeError, match="Cannot add routes after"):
            table.add(_route("/users"))

    def test_match_before_compile_raises(self) -> None:
        table = RouteTable()
        table.add(_route("/users"))
        with pytest.raises(RuntimeError, match="compiled"):
            table.match("GET", "/users")

    def test_compile_twice(self) -> None:
        table = _table(_route("/users"))
        table.compile()
        assert table.compiled
        assert table.match("GET", "/users").route.path == "/users"

    def test_add_rejects_flask_style_param(self) -> None:
        table = RouteTable()
        with pytest.raises(ConfigurationError, match="<param>.*\\{param\\}"):
            table.add(_route("/share/<slug>"))
