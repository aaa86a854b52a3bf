"""
pytest configuration and fixtures.
"""

import select
import socket
from typing import Callable, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lineserver import Reactor, ServerConfig
from lineserver.events import ClientEvent, Event


class EventRecorder:
    """Handler that remembers every event and whether its client was connected."""

    def __init__(self):
        self.events: List[Event] = []
        self.connected: List[Optional[bool]] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)
        if isinstance(event, ClientEvent):
            self.connected.append(event.client.is_connected)
        else:
            self.connected.append(None)

    def of_type(self, event_type) -> List[Event]:
        return [e for e in self.events if isinstance(e, event_type)]

    def types(self) -> List[type]:
        return [type(e) for e in self.events]


class FakeClock:
    """Stand-in for time.time(); starts on a minute boundary."""

    def __init__(self, now: float = 60_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config() -> ServerConfig:
    """Small, fast test configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        max_clients=4,
        buffer_size=64,
        poll_interval=0.05,
        log_level="WARNING",
    )


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def reactor(config: ServerConfig, recorder: EventRecorder, fake_clock: FakeClock) -> Generator[Reactor, None, None]:
    """A started reactor driven by run_once() from the test."""
    r = Reactor(config, recorder, time_func=fake_clock)
    r.start()
    yield r
    r.close()


@pytest.fixture
def pump() -> Callable:
    """Run loop iterations until ``condition()`` holds."""
    def _pump(reactor: Reactor, condition: Callable[[], bool], max_iterations: int = 100) -> None:
        for _ in range(max_iterations):
            if condition():
                return
            reactor.run_once()
        assert condition(), "condition not reached"
    return _pump


@pytest.fixture
def connect(reactor: Reactor) -> Generator[Callable[[], socket.socket], None, None]:
    """Open client connections to the reactor; all closed at teardown."""
    sockets: List[socket.socket] = []

    def _connect() -> socket.socket:
        sock = socket.create_connection(reactor.address, timeout=2.0)
        sockets.append(sock)
        return sock

    yield _connect

    for sock in sockets:
        sock.close()


def is_readable(sock: socket.socket) -> bool:
    """True if ``sock`` has data or EOF waiting."""
    readable, _, _ = select.select([sock], [], [], 0)
    return bool(readable)


def peer_closed(sock: socket.socket) -> bool:
    """True if the server side closed ``sock``."""
    try:
        return sock.recv(1024) == b""
    except ConnectionResetError:
        return True


@pytest.fixture
def readable() -> Callable[[socket.socket], bool]:
    return is_readable


@pytest.fixture
def closed_by_peer() -> Callable[[socket.socket], bool]:
    return peer_closed
