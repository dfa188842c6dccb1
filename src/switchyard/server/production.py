"""Production server — multi-worker pounce without reload."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from switchyard.app import App


def run_production_server(
    app: App,
    host: str = "0.0.0.0",
    port: int = 8000,
    workers: int = 0,  # 0 = auto-detect from CPU count
    *,
    log_level: str = "info",
) -> None:
    """Run *app* in production mode.

    Args:
        app: Switchyard App instance.
        host: Bind address (default: 0.0.0.0 for all interfaces).
        port: Bind port (default: 8000).
        workers: Worker count (0 = auto-detect from CPU count).
        log_level: Log level (debug, info, warning, error, critical).
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=workers,
        log_level=log_level,
    )
    Server(config, app).run()
