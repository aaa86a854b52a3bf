"""
=============================================================================
THE REACTOR
=============================================================================

A single-threaded event loop that serves every client from one thread.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      One Loop Iteration                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. poll(poll_interval)      Which sockets are readable?           │
    │                                                                      │
    │   2. clock.advance()          Crossed a tick boundary?              │
    │        └── yes: age every client, ClientTimeout + drop the          │
    │             ones idle too long, then one TimerExpired               │
    │                                                                      │
    │   3. listening socket ready?                                        │
    │        └── accept, claim first free slot, ClientConnect             │
    │            (table full: close it, no event)                         │
    │                                                                      │
    │   4. for each ready client, lowest slot first:                      │
    │        └── framer.read(slot) → Overflow / Error / Data / End        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every event is delivered by calling the handler directly, in this thread,
before the loop moves on. A handler that takes a second blocks every
client for a second. That is the price of having no locks anywhere.

=============================================================================
THE ^D ORDERING
=============================================================================

When a client ends with ^D the connection is torn down BEFORE the handler
hears about the final message:

    "hi^D"  →  drop(slot)  →  ClientData(b"hi")  →  ClientEnd

A reply sent from that ClientData handler goes nowhere. Handlers written
against this server rely on the order, so it is kept.

=============================================================================
"""

import atexit
import signal
import socket
import logging
import threading
import time
from typing import Callable, Optional, Tuple, Union

from ..config import ServerConfig
from ..errors import ServerSetupError
from ..events import (
    ClientConnect,
    ClientData,
    ClientEnd,
    ClientError,
    ClientOverflow,
    ClientTimeout,
    Event,
    EventHandler,
    TimerExpired,
)
from .client_table import ClientSlot, ClientTable, ClientView, close_socket
from .clock import TimeoutClock
from .framer import FrameKind, Framer
from .poller import ReadinessPoller


logger = logging.getLogger(__name__)


class Reactor:
    """
    Accepts line-oriented TCP clients and reports what they do.

    Usage:
        def handler(event):
            if isinstance(event, ClientData):
                event.client.send(event.data + b"\\n")

        reactor = Reactor(ServerConfig(port=6666), handler)
        reactor.serve_forever()      # Blocks

    For tests and embedding, start() and run_once() drive the loop one
    iteration at a time.
    """

    def __init__(
        self,
        config: ServerConfig,
        handler: EventHandler,
        time_func: Callable[[], float] = time.time,
    ):
        self.config = config
        self._handler = handler
        self._time_func = time_func

        # Created in start()
        self._socket: Optional[socket.socket] = None
        self._poller: Optional[ReadinessPoller] = None
        self._table: Optional[ClientTable] = None
        self._clock: Optional[TimeoutClock] = None
        self._framer = Framer()

        self._running = False
        self._closed = False
        self._original_handlers: dict = {}

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once started with port 0."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    @property
    def table(self) -> ClientTable:
        if self._table is None:
            raise RuntimeError("Reactor not started")
        return self._table

    # =========================================================================
    # SETUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            logger.error(f"Create error: {e}")
            raise ServerSetupError(f"Create error: {e}", self.config.port) from e

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Replies are short prompts; send them without Nagle delay
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return sock

    def start(self) -> None:
        """
        Bind, listen and get ready to serve.

        Raises:
            ServerSetupError: The socket could not be created, bound or
                              put into listening state.
        """
        if self._socket is not None:
            return

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            logger.error(f"Bind error port {self.config.port}: {e}")
            raise ServerSetupError(f"Bind error port {self.config.port}: {e}", self.config.port) from e

        try:
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Listen error port {self.config.port}: {e}")
            raise ServerSetupError(f"Listen error port {self.config.port}: {e}", self.config.port) from e

        # A client can vanish between readiness and accept(); never block there
        sock.setblocking(False)

        self._socket = sock
        self._poller = ReadinessPoller()
        self._poller.register(sock)
        self._table = ClientTable(self.config.max_clients, self.config.buffer_size, self._poller)
        self._clock = TimeoutClock(
            tick_seconds=self.config.tick_seconds,
            max_idle_ticks=self.config.max_idle_ticks,
            time_func=self._time_func,
        )
        self._closed = False

        # Release buffers and sockets on normal interpreter exit
        atexit.register(self.close)

        host, port = self.address
        logger.info(f"Listening on {host}:{port} ({self.config.max_clients} clients max)")

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    def serve_forever(self) -> None:
        """
        Run the loop until stop() is called.

        Fatal errors propagate to the caller. So does SystemExit raised by
        a handler that wants the process to end.
        """
        self.start()
        self._running = True
        self._setup_signals()
        try:
            while self._running:
                self.run_once()
        finally:
            self._running = False
            self._restore_signals()

    def run_once(self) -> None:
        """One poll / clock / accept / read pass."""
        ready = self._poller.poll(self.config.poll_interval)

        self._service_clock()

        if not ready:
            return

        if self._socket in ready:
            self._accept()

        for slot in self._table.occupied():
            if slot.socket in ready:
                self._service_client(slot)

    def stop(self) -> None:
        """Ask the loop to exit after the current iteration. Idempotent."""
        if self._running:
            logger.info("Stopping reactor...")
        self._running = False

    # =========================================================================
    # BRANCHES
    # =========================================================================

    def _service_clock(self) -> None:
        if not self._clock.advance():
            return

        for slot in self._table.occupied():
            if self._clock.age(slot):
                logger.debug(f"Client {slot.id} timed out after {slot.idle_ticks} ticks")
                self._dispatch(ClientTimeout(self._table.view(slot)))
                self._table.drop(slot)

        self._dispatch(TimerExpired())

    def _accept(self) -> None:
        try:
            client_socket, client_address = self._socket.accept()
        except BlockingIOError:
            return
        except OSError as e:
            logger.warning(f"Accept error: {e}")
            return

        # Replies go out with plain blocking sendall()
        client_socket.setblocking(True)

        slot = self._table.claim(client_socket, client_address)
        if slot is None:
            logger.warning(f"Max clients exceeded, rejecting {client_address[0]}:{client_address[1]}")
            close_socket(client_socket)
            return

        logger.debug(f"Accepted client {slot.id} from {client_address[0]}:{client_address[1]}")
        self._dispatch(ClientConnect(self._table.view(slot)))

    def _service_client(self, slot: ClientSlot) -> None:
        view = self._table.view(slot)
        frame = self._framer.read(slot)

        if frame.kind is FrameKind.PENDING:
            return

        if frame.kind is FrameKind.OVERFLOW:
            self._dispatch(ClientOverflow(view))
            slot.clear()
            return

        if frame.kind is FrameKind.CLOSED:
            self._table.drop(slot)
            self._dispatch(ClientError(view))
            return

        if frame.kind is FrameKind.END:
            self._table.drop(slot)
            if slot.terminator_offset > 0:
                self._dispatch(ClientData(view, frame.data))
            self._dispatch(ClientEnd(view))
        else:
            self._dispatch(ClientData(view, frame.data))

        slot.clear()

    def _dispatch(self, event: Event) -> None:
        """
        Hand one event to the handler, synchronously.

        A handler exception is logged and the loop carries on; one broken
        reply must not take every other client down. SystemExit and
        KeyboardInterrupt are not Exceptions and pass straight through.
        """
        try:
            self._handler(event)
        except Exception as e:
            logger.exception(f"Handler error on {event.kind.value}: {e}")

    # =========================================================================
    # DROP AND SHUTDOWN
    # =========================================================================

    def drop(self, client: Union[ClientSlot, ClientView]) -> None:
        """Close a client's connection. Dropping twice is harmless."""
        if isinstance(client, ClientView):
            client.drop()
        else:
            self.table.drop(client)

    def close(self) -> None:
        """
        Release everything: buffers, client sockets, listening socket.

        Registered with atexit by start(); runs at most once.
        """
        if self._closed or self._socket is None:
            return
        self._closed = True
        self._running = False
        atexit.unregister(self.close)

        self._table.close()
        self._poller.close()
        try:
            self._socket.close()
        except OSError:
            pass
        self._socket = None

        logger.info("Reactor stopped")

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self) -> None:
        """
        Turn SIGINT/SIGTERM into a clean stop.

        Python only lets the main thread install handlers, so a reactor
        running in a background thread (tests, embedding) skips this.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, shutting down...")
            self.stop()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()
