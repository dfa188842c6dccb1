"""Per-request context.

A ``Ctx`` is created by the pipeline for every request and passed to
each middleware, the handler, and each afterware. It carries the
response headers, a generated request id, an arbitrary ``scope``
payload, and a logger that prefixes every line with that scope.

The current ``Ctx`` is also published through ``ctx_var`` so helpers
deep in a call stack can reach it with ``get_ctx()``.

Thread safety:
    ``ContextVar`` is task-local under asyncio. A ``Ctx`` belongs to
    exactly one request and is never shared.
"""

import logging
import uuid
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any

from switchyard._internal.encoding import dumps
from switchyard.http.headers import MutableHeaders


class ScopedLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes messages with the request scope.

    The scope is read at emit time, so a middleware that swaps it with
    ``Ctx.use_scope()`` changes every later line of the request.
    """

    def __init__(self, logger: logging.Logger, ctx: "Ctx") -> None:
        super().__init__(logger, {"request_id": ctx.request_id})
        self._ctx = ctx

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        msg, kwargs = self.process(msg, kwargs)
        prefix = self._prefix()
        if prefix is not None:
            # The prefix becomes part of the format string when args are given.
            if args:
                prefix = prefix.replace("%", "%%")
            msg = f"{prefix} {msg}"
        self.logger.log(level, msg, *args, **kwargs)

    def _prefix(self) -> str | None:
        scope = self._ctx.scope
        if scope is None:
            return None
        try:
            return dumps(scope)
        except (TypeError, ValueError):
            return repr(scope)


class Ctx:
    """Mutable per-request state.

    Attributes:
        request_id: Generated identifier, unique per request.
        response_headers: Headers sent with the response. A
            ``Content-Type`` set here wins over the detected one.
        log: Request-scoped logger (see ``ScopedLogger``).
    """

    __slots__ = ("_scope", "_scope_replaced", "log", "request_id", "response_headers")

    def __init__(
        self,
        logger: logging.Logger,
        response_headers: MutableHeaders | None = None,
        request_id: str | None = None,
    ) -> None:
        self.request_id: str = request_id or str(uuid.uuid4())
        self.response_headers: MutableHeaders = (
            response_headers if response_headers is not None else MutableHeaders()
        )
        self._scope: Any = {"request_id": self.request_id}
        self._scope_replaced = False
        self.log: ScopedLogger = ScopedLogger(logger, self)

    @property
    def scope(self) -> Any:
        """Correlation payload attached to every log line of the request."""
        return self._scope

    def use_scope(self, scope: Any) -> None:
        """Replace the default ``{"request_id": ...}`` scope.

        Allowed once per request; a second replacement raises
        ``RuntimeError`` so two middleware cannot silently fight over it.
        """
        if self._scope_replaced:
            msg = "The request scope has already been replaced for this request."
            raise RuntimeError(msg)
        self._scope = scope
        self._scope_replaced = True

    def __repr__(self) -> str:
        return f"<Ctx request_id={self.request_id!r}>"


ctx_var: ContextVar[Ctx] = ContextVar("switchyard_ctx")
"""The current request context. Set by the pipeline around each request."""


def get_ctx() -> Ctx:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return ctx_var.get()
