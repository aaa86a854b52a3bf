"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the line server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m lineserver --port 7000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── LINESERVER_PORT=7000 python -m lineserver                 │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
RESOURCE FOOTPRINT
=============================================================================

The server is meant for small control-style services, so its memory use
is bounded up front:

    worst case buffer memory = max_clients * buffer_size
                             = 32 * 1024 = 32 KB (defaults)

Nothing grows past that. A client that sends more than buffer_size bytes
without a terminator gets an overflow event, not a bigger buffer.

=============================================================================
"""

import os
from dataclasses import dataclass


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the line server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog

    CLIENT TABLE
    - max_clients, buffer_size

    TIMING
    - poll_interval, tick_seconds, max_idle_ticks

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IPv4 address to bind to.
    - "0.0.0.0" - All interfaces (INADDR_ANY)
    - "127.0.0.1" - Localhost only
    """

    port: int = 6666
    """
    The port number to listen on. 0 lets the OS pick a free port,
    which is what the tests do.
    """

    backlog: int = 5
    """Maximum number of connections waiting in the accept queue."""

    # ─────────────────────────────────────────────────────────────────────
    # CLIENT TABLE
    # ─────────────────────────────────────────────────────────────────────

    max_clients: int = 32
    """
    Number of client slots. Connections beyond this are refused at
    accept time and the handler never hears about them.
    """

    buffer_size: int = 1024
    """
    Per-slot input buffer size in bytes. This is also the largest
    message a client can send.
    """

    # ─────────────────────────────────────────────────────────────────────
    # TIMING
    # ─────────────────────────────────────────────────────────────────────

    poll_interval: float = 1.0
    """
    Longest time the reactor waits for socket readiness before
    checking the timeout clock.
    """

    tick_seconds: int = 60
    """Length of one timeout clock tick. Ticks fire on boundaries."""

    max_idle_ticks: int = 9
    """
    A client is timed out once its idle tick count exceeds this value,
    i.e. after ten silent ticks with the default.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    log_format: str = "text"
    """Event log format: 'text' or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        LINESERVER_HOST         Bind address (default: 0.0.0.0)
        LINESERVER_PORT         Listen port (default: 6666)
        LINESERVER_MAX_CLIENTS  Client table size (default: 32)
        LINESERVER_BUFFER_SIZE  Per-client buffer bytes (default: 1024)
        LINESERVER_LOG_LEVEL    Logging level (default: INFO)
        LINESERVER_LOG_FORMAT   Event log format (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("LINESERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("LINESERVER_PORT", "6666")),
            max_clients=int(os.getenv("LINESERVER_MAX_CLIENTS", "32")),
            buffer_size=int(os.getenv("LINESERVER_BUFFER_SIZE", "1024")),
            log_level=os.getenv("LINESERVER_LOG_LEVEL", "INFO"),
            log_format=os.getenv("LINESERVER_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails immediately rather
        than on the first client.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.max_clients < 1:
            raise ValueError("max_clients must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if self.tick_seconds < 1:
            raise ValueError("tick_seconds must be >= 1")

        if self.max_idle_ticks < 0:
            raise ValueError("max_idle_ticks must be >= 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid log_format: {self.log_format!r}. Must be one of {LOG_FORMATS}."
            )
