"""
=============================================================================
LINE SERVER
=============================================================================

The application-facing entry point. It ties configuration, logging, the
middleware pipeline and the reactor together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ServerConfig ──► LineServer ──► Reactor ──► poller / table /      │
    │                        │                      framer / clock        │
    │                        │                                             │
    │                        └──► MiddlewarePipeline ──► your handler     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
USAGE
=============================================================================

    from lineserver import LineServer, ServerConfig
    from lineserver.events import ClientConnect, ClientData

    server = LineServer(ServerConfig(port=6666))

    @server.on_event
    def handle(event):
        if isinstance(event, ClientConnect):
            event.client.send(b"Welcome\\n> ")
        elif isinstance(event, ClientData):
            event.client.send(event.data.upper() + b"\\n> ")

    server.run()     # Blocks until SIGINT/SIGTERM or sys.exit()

=============================================================================
"""

import logging
import sys
import time
from typing import Callable, Optional

from .config import ServerConfig
from .core.reactor import Reactor
from .events import EventHandler
from .middleware import Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class LineServer:
    """
    Multi-client line-oriented TCP server.

    Features:
    - Up to max_clients simultaneous connections on one port
    - LF / CR / ^D message framing
    - Idle client timeout and a once-per-tick TimerExpired event
    - Middleware around the event handler
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        handler: Optional[EventHandler] = None,
        time_func: Callable[[], float] = time.time,
    ):
        """
        Args:
            config: Server configuration. Defaults if not provided.
            handler: Event handler; can also be set with on_event().
            time_func: Wall clock for the timeout clock.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._handler = handler
        self._middleware = MiddlewarePipeline()
        self._time_func = time_func
        self._reactor: Optional[Reactor] = None

    # =========================================================================
    # CONFIGURATION METHODS
    # =========================================================================

    def use(self, middleware: Middleware) -> "LineServer":
        """Add middleware. First added runs first."""
        self._middleware.add(middleware)
        return self

    def on_event(self, handler: EventHandler) -> EventHandler:
        """Decorator that sets the event handler."""
        self._handler = handler
        return handler

    @property
    def reactor(self) -> Optional[Reactor]:
        """The running reactor, once run() or build() has created it."""
        return self._reactor

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def build(self) -> Reactor:
        """
        Wrap the handler in the middleware chain and create the reactor.

        run() calls this; tests call it directly to drive the reactor
        one iteration at a time.
        """
        if self._handler is None:
            raise ValueError("No event handler set; pass one or use @server.on_event")

        handler = self._middleware.wrap(self._handler)
        self._reactor = Reactor(self.config, handler, time_func=self._time_func)
        return self._reactor

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        reactor = self.build()

        try:
            reactor.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            reactor.close()

    def stop(self) -> None:
        """Stop a running server from another thread or a handler."""
        if self._reactor is not None:
            self._reactor.stop()

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            stream=sys.stderr,
        )

        logging.getLogger("lineserver").setLevel(level)
