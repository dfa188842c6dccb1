"""Middleware and afterware protocols, and the composer that joins them.

A middleware is any callable matching::

    async def my_mw(request: Request, ctx: Ctx) -> None: ...

It runs before the handler and stops the chain by raising. An
afterware has the same shape but runs after the handler, always, and
cannot change the response. Plain ``def`` works for both.

No base class required. The framework checks the shape, not the lineage.
"""

from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeAlias

import anyio

from switchyard._internal.invoke import invoke
from switchyard.context import Ctx
from switchyard.http.request import Request

# Terminal handler: returns the value to resolve, raises to fail
Handler: TypeAlias = Callable[[Request, Ctx], Any]


class Middleware(Protocol):
    """Protocol for switchyard middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def require_token(request: Request, ctx: Ctx) -> None:
            if "authorization" not in request.headers:
                raise HTTPError(401, "missing token")

        # Class middleware
        class Tenant:
            def __call__(self, request: Request, ctx: Ctx) -> None:
                ctx.use_scope({"request_id": ctx.request_id, "tenant": ...})
    """

    def __call__(self, request: Request, ctx: Ctx) -> Any: ...


class Afterware(Protocol):
    """Protocol for switchyard afterware. Runs once per request, always."""

    def __call__(self, request: Request, ctx: Ctx) -> Any: ...


def compose(
    handler: Handler,
    middleware: Sequence[Middleware] = (),
    afterware: Sequence[Afterware] = (),
) -> Handler:
    """Build one handler that runs *middleware*, *handler*, then *afterware*.

    - Middleware run in order. The first one that raises stops the
      chain: later middleware and the handler are skipped and the
      exception propagates as the result.
    - Afterware run exactly once, in order, whether the chain returned,
      raised, or was cancelled. They run inside a shielded cancel scope
      so a cancelled request still gets its cleanup. An afterware that
      raises is logged; it never replaces the chain's outcome.
    """
    middleware = tuple(m for m in middleware if m is not None)
    afterware = tuple(a for a in afterware if a is not None)

    if not middleware and not afterware:
        return handler

    async def composed(request: Request, ctx: Ctx) -> Any:
        try:
            for mw in middleware:
                await invoke(mw, request, ctx)
            return await invoke(handler, request, ctx)
        finally:
            if afterware:
                with anyio.CancelScope(shield=True):
                    await _run_afterware(afterware, request, ctx)

    composed.__name__ = getattr(handler, "__name__", "composed")
    composed.__qualname__ = getattr(handler, "__qualname__", "composed")
    composed.__wrapped__ = handler  # type: ignore[attr-defined]
    return composed


async def _run_afterware(afterware: tuple[Afterware, ...], request: Request, ctx: Ctx) -> None:
    for aw in afterware:
        try:
            await invoke(aw, request, ctx)
        except Exception:
            ctx.log.exception("afterware %s failed", getattr(aw, "__name__", repr(aw)))
