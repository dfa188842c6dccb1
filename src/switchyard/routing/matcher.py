"""Trie-based path matcher.

Paths use ``:name`` parameter segments and an optional trailing
``*name`` catch-all::

    /users
    /users/:id
    /users/:id/posts/:post_id
    /static/*filepath

Routes are added during finalization and frozen by ``compile()``. After
that the trie is only read, so lookups need no locking.
"""

from switchyard.errors import ConfigurationError, MethodNotAllowed, NotFound
from switchyard.routing.route import PathSegment, Route, RouteMatch


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"            -> [PathSegment("users")]
        "/users/:id"        -> [PathSegment("users"), PathSegment(":id", "param", "id")]
        "/files/*filepath"  -> [PathSegment("files"), PathSegment("*filepath", "catch_all", "filepath")]
    """
    if not path.startswith("/"):
        msg = f"Route path {path!r} must begin with '/'."
        raise ConfigurationError(msg)

    parts = [p for p in path.strip("/").split("/") if p]
    segments: list[PathSegment] = []
    for i, part in enumerate(parts):
        if part[0] in ":*":
            name = part[1:]
            if not name:
                msg = f"Route path {path!r} has a parameter segment without a name."
                raise ConfigurationError(msg)
            if part[0] == "*":
                if i != len(parts) - 1:
                    msg = f"Catch-all {part!r} must be the last segment of {path!r}."
                    raise ConfigurationError(msg)
                segments.append(PathSegment(value=part, kind="catch_all", name=name))
            else:
                segments.append(PathSegment(value=part, kind="param", name=name))
        else:
            segments.append(PathSegment(value=part))
    return segments


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all", "children", "param_child", "param_name", "routes_by_method")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child (only one param name per level)
        self.param_name: str | None = None
        self.param_child: _TrieNode | None = None
        # Catch-all edge: (param name, routes keyed by method)
        self.catch_all: tuple[str, dict[str, Route]] | None = None
        # Routes at this node, keyed by HTTP method
        self.routes_by_method: dict[str, Route] = {}


class Matcher:
    """Compiled matcher with trie-based path lookup.

    Usage::

        matcher = Matcher()
        matcher.add(Route("GET", "/users/:id", handler))
        matcher.compile()
        match = matcher.match("GET", "/users/42")
    """

    __slots__ = ("_compiled", "_root")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._compiled = False

    def add(self, route: Route) -> None:
        """Add a route. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        for seg in parse_path(route.path):
            if seg.kind == "catch_all":
                if node.catch_all is None:
                    node.catch_all = (seg.name or "", {})
                name, by_method = node.catch_all
                if name != seg.name:
                    msg = f"Catch-all {seg.value!r} in {route.path!r} conflicts with existing '*{name}'."
                    raise ConfigurationError(msg)
                self._register(by_method, route)
                return

            if seg.kind == "param":
                if node.param_child is None:
                    node.param_name = seg.name
                    node.param_child = _TrieNode()
                elif node.param_name != seg.name:
                    msg = (
                        f"Parameter {seg.value!r} in {route.path!r} conflicts with "
                        f"existing ':{node.param_name}' at the same position."
                    )
                    raise ConfigurationError(msg)
                node = node.param_child
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        self._register(node.routes_by_method, route)

    @staticmethod
    def _register(by_method: dict[str, Route], route: Route) -> None:
        if route.method in by_method:
            msg = f"Duplicate route: {route.method} {route.path}"
            raise ConfigurationError(msg)
        by_method[route.method] = route

    def compile(self) -> None:
        """Freeze the matcher. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request method and path.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFound`` if no route matches the path.
        Raises ``MethodNotAllowed`` if the path matches but the method doesn't.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        result = self._match_node(self._root, parts, 0, {}, method)
        if result is not None:
            by_method, params = result
            return RouteMatch(route=by_method[method], path_params=params)

        # No route for this method: decide between 404 and 405.
        result = self._match_node(self._root, parts, 0, {}, None)
        if result is None:
            raise NotFound
        raise MethodNotAllowed(frozenset(result[0]))

    def lookup(self, method: str, path: str) -> RouteMatch | None:
        """Like ``match()`` but returns ``None`` instead of raising."""
        try:
            return self.match(method, path)
        except (NotFound, MethodNotAllowed):
            return None

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
        method: str | None,
    ) -> tuple[dict[str, Route], dict[str, str]] | None:
        """Recursively match path parts against the trie.

        With *method*, only nodes that serve it count as a match, so a
        less specific route for that method can still win.
        """
        # All parts consumed: this node or nothing
        if index == len(parts):
            if _serves(node.routes_by_method, method):
                return node.routes_by_method, params
            return None

        part = parts[index]

        # 1. Try static child first (exact match)
        child = node.children.get(part)
        if child is not None:
            result = self._match_node(child, parts, index + 1, params, method)
            if result is not None:
                return result

        # 2. Try parameter child
        if node.param_child is not None and node.param_name is not None:
            new_params = {**params, node.param_name: part}
            result = self._match_node(node.param_child, parts, index + 1, new_params, method)
            if result is not None:
                return result

        # 3. Try catch-all
        if node.catch_all is not None:
            name, by_method = node.catch_all
            if _serves(by_method, method):
                return by_method, {**params, name: "/".join(parts[index:])}

        return None


def _serves(by_method: dict[str, Route], method: str | None) -> bool:
    if method is None:
        return bool(by_method)
    return method in by_method
