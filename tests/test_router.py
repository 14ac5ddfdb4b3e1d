"""Tests for perch.routing.router: trie router and most-specific matching."""

import pytest

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.route import Route
from perch.routing.router import Router, parse_path


def _handler() -> str:
    return "ok"


def _other() -> str:
    return "other"


def _route(path: str, methods: frozenset[str] | None = None, handler=_handler) -> Route:
    return Route(path=path, handler=handler, methods=methods or frozenset({"GET"}))


def _router(*routes: Route) -> Router:
    r = Router()
    for route in routes:
        r.add(route)
    r.compile()
    return r


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
        segments = parse_path("/users/{id:int}")
        assert segments[1].param_type == "int"

    def test_star_is_path(self) -> None:
        segments = parse_path("/files/{rest*}")
        assert segments[1].param_type == "path"
        assert segments[1].param_name == "rest"

    def test_root(self) -> None:
        assert parse_path("/") == []

    def test_rejects_angle_bracket_param(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_path("/share/<slug>")
        assert "<param>" in str(exc_info.value)
        assert "{slug}" in str(exc_info.value)

    def test_rejects_unknown_converter(self) -> None:
        with pytest.raises(ConfigurationError, match="unknown converter 'uuid'"):
            parse_path("/items/{id:uuid}")

    def test_rejects_empty_braces(self) -> None:
        with pytest.raises(ConfigurationError, match="malformed"):
            parse_path("/items/{}")

    def test_rejects_catch_all_before_end(self) -> None:
        with pytest.raises(ConfigurationError, match="last segment"):
            parse_path("/files/{rest*}/meta")

    def test_rejects_repeated_name(self) -> None:
        with pytest.raises(ConfigurationError, match="repeats"):
            parse_path("/a/{id}/b/{id}")


class TestStaticRoutes:
    def test_root(self) -> None:
        match = _router(_route("/")).match("GET", "/")
        assert match.path_params == {}

    def test_trailing_and_duplicate_slashes_ignored(self) -> None:
        r = _router(_route("/users/list"))
        assert r.match("GET", "/users/list/").route.path == "/users/list"
        assert r.match("GET", "//users//list").route.path == "/users/list"

    def test_not_found(self) -> None:
        r = _router(_route("/users"))
        with pytest.raises(NotFound):
            r.match("GET", "/posts")


class TestParamRoutes:
    def test_str_param(self) -> None:
        match = _router(_route("/{id}")).match("GET", "/abc")
        assert match.path_params == {"id": "abc"}
        assert match.param_types == {"id": "str"}

    def test_int_param_rejects_non_digits(self) -> None:
        r = _router(_route("/users/{id:int}"))
        assert r.match("GET", "/users/42").path_params == {"id": "42"}
        with pytest.raises(NotFound):
            r.match("GET", "/users/abc")

    def test_float_param(self) -> None:
        r = _router(_route("/price/{amount:float}"))
        assert r.match("GET", "/price/9.99").path_params == {"amount": "9.99"}

    def test_catch_all_takes_remainder(self) -> None:
        r = _router(_route("/files/{rest*}"))
        match = r.match("GET", "/files/a/b/c.txt")
        assert match.path_params == {"rest": "a/b/c.txt"}
        assert match.param_types == {"rest": "path"}

    def test_catch_all_needs_a_segment(self) -> None:
        r = _router(_route("/files/{rest*}"))
        with pytest.raises(NotFound):
            r.match("GET", "/files")


class TestSpecificity:
    def test_static_beats_param(self) -> None:
        r = _router(
            _route("/{id}", handler=_other),
            _route("/restricted"),
        )
        assert r.match("GET", "/restricted").route.path == "/restricted"
        assert r.match("GET", "/alice").route.path == "/{id}"

    def test_registration_order_does_not_matter(self) -> None:
        r = _router(
            _route("/restricted"),
            _route("/{id}", handler=_other),
        )
        assert r.match("GET", "/restricted").route.path == "/restricted"

    def test_int_beats_str(self) -> None:
        r = _router(
            _route("/items/{slug}"),
            _route("/items/{id:int}", handler=_other),
        )
        assert r.match("GET", "/items/7").route.path == "/items/{id:int}"
        assert r.match("GET", "/items/seven").route.path == "/items/{slug}"

    def test_param_beats_catch_all(self) -> None:
        r = _router(
            _route("/docs/{rest*}"),
            _route("/docs/{page}", handler=_other),
        )
        assert r.match("GET", "/docs/intro").route.path == "/docs/{page}"
        assert r.match("GET", "/docs/guide/intro").route.path == "/docs/{rest*}"

    def test_backtracks_when_static_branch_dead_ends(self) -> None:
        r = _router(
            _route("/users/me"),
            _route("/users/{id}/posts", handler=_other),
        )
        match = r.match("GET", "/users/me/posts")
        assert match.route.path == "/users/{id}/posts"
        assert match.path_params == {"id": "me"}

    def test_backtracks_on_method(self) -> None:
        r = _router(
            _route("/users/new", frozenset({"GET"})),
            _route("/users/{id}", frozenset({"DELETE"}), handler=_other),
        )
        assert r.match("DELETE", "/users/new").route.path == "/users/{id}"


class TestMethods:
    def test_method_not_allowed_lists_methods(self) -> None:
        r = _router(_route("/users", frozenset({"GET", "POST"})))
        with pytest.raises(MethodNotAllowed) as exc_info:
            r.match("DELETE", "/users")
        assert exc_info.value.status == 405
        assert ("Allow", "GET, HEAD, POST") in exc_info.value.headers

    def test_head_falls_back_to_get(self) -> None:
        r = _router(_route("/"))
        assert r.match("HEAD", "/").route.path == "/"

    def test_any_method(self) -> None:
        r = _router(
            _route("/hook", frozenset({"*"})),
            _route("/hook", frozenset({"GET"}), handler=_other),
        )
        assert r.match("PATCH", "/hook").route.handler is _handler
        assert r.match("GET", "/hook").route.handler is _other


class TestRegistration:
    def test_duplicate_method_conflicts(self) -> None:
        r = Router()
        r.add(_route("/users"))
        with pytest.raises(ConfigurationError, match="Route conflict"):
            r.add(_route("/users/"))

    def test_same_path_different_methods(self) -> None:
        r = _router(
            _route("/users", frozenset({"GET"})),
            _route("/users", frozenset({"POST"}), handler=_other),
        )
        assert r.match("POST", "/users").route.handler is _other

    def test_param_name_conflict(self) -> None:
        r = Router()
        r.add(_route("/users/{id}"))
        with pytest.raises(ConfigurationError, match="conflicts"):
            r.add(_route("/users/{name}/posts"))

    def test_different_converters_coexist(self) -> None:
        r = _router(_route("/x/{id:int}"), _route("/x/{name}"))
        assert len(r.routes) == 2

    def test_add_after_compile(self) -> None:
        r = _router(_route("/"))
        with pytest.raises(RuntimeError):
            r.add(_route("/late"))

    def test_routes_in_registration_order(self) -> None:
        r = _router(_route("/b"), _route("/a"), _route("/{id}"))
        assert [route.path for route in r.routes] == ["/b", "/a", "/{id}"]
