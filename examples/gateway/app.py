"""Gateway — groups, middleware, websockets, and a legacy fallback.

New endpoints live under ``/api``; anything the router does not know is
forwarded to the legacy service named by ``LEGACY_ORIGIN``.

Demonstrates:
- Nested route groups sharing a prefix and middleware
- Token middleware that rejects requests by raising
- Afterware that runs whatever the handler did
- A websocket chat room behind the same middleware
- Quiet health checks

Run:
    LEGACY_ORIGIN=http://localhost:9000 python app.py
"""

import logging
import os

from switchyard import App, AppConfig, HTTPError
from switchyard.middleware import CORSMiddleware, cors_handler

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

TOKENS = {"secret-token": "ada"}

app = App(
    AppConfig(
        app_name="gateway",
        fallback_proxy=os.environ.get("LEGACY_ORIGIN", ""),
        quiet_routes=("/health",),
    )
)


def require_token(request, ctx) -> None:
    auth = request.headers.get("authorization", "")
    user = TOKENS.get(auth.removeprefix("Bearer "))
    if user is None:
        raise HTTPError(401, "missing or invalid token", (("WWW-Authenticate", "Bearer"),))
    ctx.use_scope({"request_id": ctx.request_id, "user": user})


def audit(request, ctx) -> None:
    ctx.log.info("audited %s %s", request.method, request.path)


@app.route("/health")
def health(request, ctx):
    return {"ok": True}


api = app.add_group("/api")
api.before(CORSMiddleware("*"))
api.options("/*path", cors_handler("*"))

v1 = api.add_group("/v1")
v1.before(require_token)
v1.after(audit)


def whoami(request, ctx):
    return {"user": ctx.scope["user"]}


v1.get("/me", whoami)


async def chat(request, ctx, ws) -> None:
    user = ctx.scope["user"]
    await ws.send_json({"joined": user})
    async for message in ws:
        await ws.send_json({"from": user, "text": message})


v1.ws("/chat", chat)


if __name__ == "__main__":
    app.run()
