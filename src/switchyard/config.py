"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(port=3000, fallback_proxy="http://legacy:8080")
    """

    app_name: str = "switchyard"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    workers: int = 0  # 0 = auto-detect from CPU count
    log_level: str = "info"

    # Dispatch
    fallback_proxy: str = ""  # origin URL; empty disables the fallback proxy
    proxy_timeout: float = 30.0
    quiet_routes: tuple[str, ...] = ()  # paths logged at DEBUG instead of INFO
