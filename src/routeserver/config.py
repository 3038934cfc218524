"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables of the server in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m routeserver --port 3000                         │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── ROUTESERVER_PORT=3000 python -m routeserver               │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Values are checked once at startup by validate(); a bad value stops the
process before the socket is bound.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar


T = TypeVar("T")

ENV_PREFIX = "ROUTESERVER_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size, payload_limit

    THREADING SETTINGS
    - min_workers, max_workers, queue_size

    LOGGING
    - log_level, log_format

    IDENTITY
    - server_name, app_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8080

    backlog: int = 128
    """Maximum number of queued connections before new ones are refused."""

    buffer_size: int = 8192
    """Bytes read per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket timeout for the first request on a connection. None = blocking."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """
    Hard limit on a whole request (headers + body) read from the socket.
    Larger requests get 413 before any handler runs.
    """

    payload_limit: int = 256 * 1024  # 256 KB
    """
    Limit for ctx.body() / ctx.text(). Handlers reading more get 413.
    JSON bodies have their own limit on JsonConfig.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """'text' (Apache style access lines) or 'json' (one object per line)."""

    # ─────────────────────────────────────────────────────────────────────
    # IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "routeserver/1.0"
    """Value of the Server response header."""

    app_name: str = "routeserver"
    """Name reported by the demo application's /app_name route."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        ROUTESERVER_HOST           Server host (default: 127.0.0.1)
        ROUTESERVER_PORT           Server port (default: 8080)
        ROUTESERVER_WORKERS        Max worker threads (default: 16)
                                   min_workers is capped to match
        ROUTESERVER_TIMEOUT        Socket timeout in seconds (default: 30)
        ROUTESERVER_PAYLOAD_LIMIT  Body limit in bytes (default: 262144)
        ROUTESERVER_LOG_LEVEL      Logging level (default: INFO)
        ROUTESERVER_LOG_FORMAT     text or json (default: text)
        ROUTESERVER_APP_NAME       Application name (default: routeserver)

        =====================================================================
        """
        defaults = cls()
        workers = _env("WORKERS", int, defaults.max_workers)
        return cls(
            host=_env("HOST", str, defaults.host),
            port=_env("PORT", int, defaults.port),
            max_workers=workers,
            min_workers=min(defaults.min_workers, workers),
            timeout=_env("TIMEOUT", float, defaults.timeout),
            payload_limit=_env("PAYLOAD_LIMIT", int, defaults.payload_limit),
            log_level=_env("LOG_LEVEL", str, defaults.log_level).upper(),
            log_format=_env("LOG_FORMAT", str, defaults.log_format).lower(),
            app_name=_env("APP_NAME", str, defaults.app_name),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid value.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.payload_limit < 0:
            raise ValueError("payload_limit must be >= 0")

        if self.payload_limit > self.max_request_size:
            raise ValueError("payload_limit must be <= max_request_size")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}.")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Must be 'text' or 'json'.")


def _env(name: str, convert: Callable[[str], T], default: T) -> T:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return convert(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name}: {raw!r}")
