"""Tests for wren.routing.route: handler references and cache records."""

from wren.routing.route import HandlerRef, Route


class TestHandlerRef:
    def test_controller_handler(self) -> None:
        ref = HandlerRef("shop.handlers", "admin.users", "UserController", "show")
        assert ref.handler == "admin.users.UserController"
        assert ref.module_name == "shop.handlers.admin.users"
        assert str(ref) == "shop.handlers:admin.users.UserController.show"

    def test_function_handler(self) -> None:
        ref = HandlerRef("shop.handlers", "health", None, "ping")
        assert ref.handler == "health"
        assert str(ref) == "shop.handlers:health.ping"


class TestRouteRecords:
    def test_record_round_trip(self) -> None:
        route = Route(
            path="/users/{id:int}",
            methods=frozenset({"GET", "HEAD"}),
            handler=HandlerRef("app", "users", "UserController", "show"),
            params=("id",),
            name="user",
        )

        record = route.to_record()

        assert record["methods"] == ["GET", "HEAD"]
        assert record["controller"] == "UserController"
        assert Route.from_record(record) == route

    def test_key(self) -> None:
        route = Route("/a", frozenset({"GET"}), HandlerRef("app", "m", None, "f"))
        assert route.key == ("app", "m", "f", "/a")
