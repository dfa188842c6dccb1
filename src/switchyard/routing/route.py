"""Route, PathSegment and RouteMatch frozen dataclasses."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:    ``/users``  (kind="static")
    Param:     ``/:id``    (kind="param", name="id")
    Catch-all: ``/*rest``  (kind="catch_all", name="rest"; last segment only)
    """

    value: str
    kind: str = "static"
    name: str | None = None

    @property
    def is_param(self) -> bool:
        return self.kind != "static"


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route: one method, one full path, one composed handler.

    ``endpoint`` is what the matcher hands back: normally the pipeline
    wrapper around ``handler``, or a raw ASGI app for ``handle_asgi``.
    """

    method: str
    path: str
    handler: Callable[..., Any]
    endpoint: Callable[..., Any] | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
