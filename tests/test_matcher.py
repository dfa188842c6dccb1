"""Tests for switchyard.routing.matcher — trie-based path matching."""

import pytest

from switchyard.errors import ConfigurationError, MethodNotAllowed, NotFound
from switchyard.routing.matcher import Matcher, parse_path
from switchyard.routing.route import Route


def _handler(request, ctx) -> str:
    return "ok"


def _matcher(*routes: tuple[str, str]) -> Matcher:
    m = Matcher()
    for method, path in routes:
        m.add(Route(method, path, _handler))
    m.compile()
    return m


class TestParsePath:
    def test_static(self) -> None:
        segments = parse_path("/api/v2/users")
        assert [s.value for s in segments] == ["api", "v2", "users"]
        assert not any(s.is_param for s in segments)

    def test_param(self) -> None:
        segments = parse_path("/users/:id")
        assert segments[1].kind == "param"
        assert segments[1].name == "id"

    def test_catch_all(self) -> None:
        segments = parse_path("/static/*filepath")
        assert segments[1].kind == "catch_all"
        assert segments[1].name == "filepath"

    def test_root(self) -> None:
        assert parse_path("/") == []

    def test_requires_leading_slash(self) -> None:
        with pytest.raises(ConfigurationError, match="must begin with '/'"):
            parse_path("users")

    def test_unnamed_param(self) -> None:
        with pytest.raises(ConfigurationError, match="without a name"):
            parse_path("/users/:")

    def test_catch_all_must_be_last(self) -> None:
        with pytest.raises(ConfigurationError, match="last segment"):
            parse_path("/files/*rest/edit")


class TestMatch:
    def test_root(self) -> None:
        match = _matcher(("GET", "/")).match("GET", "/")
        assert match.route.path == "/"
        assert match.path_params == {}

    def test_param_extraction(self) -> None:
        m = _matcher(("GET", "/users/:id/posts/:post_id"))
        match = m.match("GET", "/users/42/posts/7")
        assert match.path_params == {"id": "42", "post_id": "7"}

    def test_static_beats_param(self) -> None:
        m = _matcher(("GET", "/users/:id"), ("GET", "/users/me"))
        assert m.match("GET", "/users/me").route.path == "/users/me"
        assert m.match("GET", "/users/42").path_params == {"id": "42"}

    def test_backtracks_from_static_to_param(self) -> None:
        m = _matcher(("GET", "/a/b/d"), ("GET", "/a/:x/c"))
        match = m.match("GET", "/a/b/c")
        assert match.route.path == "/a/:x/c"
        assert match.path_params == {"x": "b"}

    def test_catch_all(self) -> None:
        m = _matcher(("GET", "/static/*filepath"))
        match = m.match("GET", "/static/css/app.css")
        assert match.path_params == {"filepath": "css/app.css"}

    def test_trailing_slash_ignored(self) -> None:
        m = _matcher(("GET", "/users"))
        assert m.match("GET", "/users/").route.path == "/users"

    def test_method_specific_catch_all_wins_over_other_method(self) -> None:
        m = _matcher(("GET", "/api/v1/me"), ("OPTIONS", "/api/*path"))
        match = m.match("OPTIONS", "/api/v1/me")
        assert match.route.path == "/api/*path"
        assert match.path_params == {"path": "v1/me"}
        assert m.match("GET", "/api/v1/me").route.path == "/api/v1/me"

    def test_not_found(self) -> None:
        with pytest.raises(NotFound):
            _matcher(("GET", "/users")).match("GET", "/posts")

    def test_method_not_allowed_lists_methods(self) -> None:
        m = _matcher(("GET", "/users"), ("PUT", "/users"))
        with pytest.raises(MethodNotAllowed) as exc_info:
            m.match("POST", "/users")
        assert exc_info.value.status == 405
        assert exc_info.value.headers == (("Allow", "GET, PUT"),)

    def test_lookup_returns_none_on_miss(self) -> None:
        m = _matcher(("GET", "/users"))
        assert m.lookup("GET", "/nope") is None
        assert m.lookup("DELETE", "/users") is None
        assert m.lookup("GET", "/users") is not None


class TestRegistration:
    def test_duplicate_route(self) -> None:
        m = Matcher()
        m.add(Route("GET", "/users", _handler))
        with pytest.raises(ConfigurationError, match="Duplicate route: GET /users"):
            m.add(Route("GET", "/users", _handler))

    def test_conflicting_param_names(self) -> None:
        m = Matcher()
        m.add(Route("GET", "/users/:id", _handler))
        with pytest.raises(ConfigurationError, match="conflicts"):
            m.add(Route("GET", "/users/:user_id/posts", _handler))

    def test_add_after_compile(self) -> None:
        m = _matcher(("GET", "/"))
        with pytest.raises(RuntimeError, match="after compilation"):
            m.add(Route("GET", "/late", _handler))
