"""
=============================================================================
LINESERVER - Multi-Client Line-Oriented TCP Server
=============================================================================

A small reactor for telnet-style control services: many clients on one
port, one thread, one select loop, messages framed by LF, CR or ^D, and a
handler that hears about everything through seven events.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    lineserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m lineserver)
    ├── server.py            # LineServer facade
    ├── config.py            # ServerConfig dataclass
    ├── events.py            # The event types handed to handlers
    ├── errors.py            # Fatal error hierarchy
    ├── core/                # The reactor and its parts
    │   ├── poller.py        # Readiness multiplexer (selectors)
    │   ├── client_table.py  # Client slots and buffer pool
    │   ├── framer.py        # Terminator scanning
    │   ├── clock.py         # Tick boundaries and idle timeouts
    │   └── reactor.py       # The loop
    ├── middleware/          # Handler middleware
    │   ├── base.py          # Middleware, MiddlewarePipeline
    │   └── logging.py       # Event logging
    └── handlers/
        └── greeter.py       # Example hello / path / goodby handler

=============================================================================
QUICK START
=============================================================================

    from lineserver import LineServer, ServerConfig
    from lineserver.events import ClientData

    server = LineServer(ServerConfig(port=6666))

    @server.on_event
    def echo(event):
        if isinstance(event, ClientData):
            event.client.send(event.data + b"\\n")

    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import LineServer
from .core.reactor import Reactor
from .errors import FatalServerError

__all__ = ["LineServer", "Reactor", "ServerConfig", "FatalServerError", "__version__"]
