"""Development server with hot reload.

Starts a pounce ASGI server with the live switchyard App object in
single-worker mode with reload enabled.
"""


def run_dev_server(app: object, host: str, port: int, *, reload: bool = True) -> None:
    """Start a pounce dev server for *app*.

    Pounce's ``run()`` takes an import string, but switchyard has a live
    ``App`` object, so ``pounce.Server`` is used directly.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
    )
    Server(config, app).run()
