"""Tests for wren.routing.reader: route decorators and the decorator reader."""

from wren.routing.reader import DecoratorRouteReader, RouteSpec, controller, join_path, route


class TestJoinPath:
    def test_prefix_and_path(self) -> None:
        assert join_path("/users", "/{id}") == "/users/{id}"

    def test_empty_parts(self) -> None:
        assert join_path("", "") == "/"
        assert join_path("/users", "") == "/users"
        assert join_path("", "health") == "/health"

    def test_extra_slashes(self) -> None:
        assert join_path("/api/", "/v1/") == "/api/v1"


class TestDecoratorRouteReader:
    def test_function_routes(self) -> None:
        @route("/health", name="health")
        def ping() -> str:
            return "ok"

        specs = DecoratorRouteReader().read(ping)

        assert specs == [RouteSpec("/health", frozenset({"GET"}), "ping", "health")]

    def test_methods_normalized(self) -> None:
        @route("/items", methods=["post", "Put"])
        def save() -> None: ...

        (spec,) = DecoratorRouteReader().read(save)
        assert spec.methods == frozenset({"POST", "PUT"})

    def test_stacked_routes_keep_declaration_order(self) -> None:
        @route("/a")
        @route("/b")
        def both() -> None: ...

        specs = DecoratorRouteReader().read(both)
        assert [s.path for s in specs] == ["/a", "/b"]

    def test_undecorated_function(self) -> None:
        def plain() -> None: ...

        assert DecoratorRouteReader().read(plain) == []

    def test_controller_prefix(self) -> None:
        @controller("/users")
        class UserController:
            @route("/")
            def index(self) -> None: ...

            @route("/{id:int}", methods=["GET", "DELETE"])
            def show(self, id: int) -> None: ...

            def helper(self) -> None: ...

        specs = DecoratorRouteReader().read(UserController)

        assert [(s.path, s.action) for s in specs] == [
            ("/users", "index"),
            ("/users/{id:int}", "show"),
        ]

    def test_class_without_prefix(self) -> None:
        class Plain:
            @route("/about")
            def about(self) -> None: ...

        (spec,) = DecoratorRouteReader().read(Plain)
        assert spec.path == "/about"

    def test_private_methods_skipped(self) -> None:
        class Hidden:
            @route("/secret")
            def _secret(self) -> None: ...

        assert DecoratorRouteReader().read(Hidden) == []

    def test_inherited_routes(self) -> None:
        class Base:
            @route("/base")
            def base(self) -> None: ...

        @controller("/child")
        class Child(Base):
            @route("/own")
            def own(self) -> None: ...

        specs = DecoratorRouteReader().read(Child)
        assert [s.path for s in specs] == ["/child/base", "/child/own"]
