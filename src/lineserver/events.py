"""
=============================================================================
EVENTS
=============================================================================

Everything the server tells the handler arrives as one of seven events:

    Event
    ├── TimerExpired          once per tick, no client attached
    └── ClientEvent           carries exactly one ClientView
        ├── ClientConnect     new connection, view can send
        ├── ClientData        a framed message (event.data)
        ├── ClientEnd         client sent ^D, already disconnected
        ├── ClientError       peer closed or recv failed, disconnected
        ├── ClientOverflow    buffer filled without a terminator
        └── ClientTimeout     idle for too many ticks, about to be dropped

TimerExpired has no ``client`` attribute at all, so a handler cannot
mistake it for a client event:

    def handler(event):
        if isinstance(event, ClientData):
            event.client.send(b"got " + event.data + b"\\n")
        elif isinstance(event, TimerExpired):
            rotate_logs()

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar

from .core.client_table import ClientView


class EventKind(Enum):
    """Tag for each event type, handy for logging and dispatch tables."""
    TIMER_EXPIRED = "timer_expired"
    CLIENT_CONNECT = "client_connect"
    CLIENT_DATA = "client_data"
    CLIENT_END = "client_end"
    CLIENT_ERROR = "client_error"
    CLIENT_OVERFLOW = "client_overflow"
    CLIENT_TIMEOUT = "client_timeout"


@dataclass(frozen=True)
class Event:
    """Base class of all events."""
    kind: ClassVar[EventKind]


@dataclass(frozen=True)
class TimerExpired(Event):
    """The periodic tick. Fires even when no client is connected."""
    kind: ClassVar[EventKind] = EventKind.TIMER_EXPIRED


@dataclass(frozen=True)
class ClientEvent(Event):
    """An event about one client."""
    client: ClientView


@dataclass(frozen=True)
class ClientConnect(ClientEvent):
    kind: ClassVar[EventKind] = EventKind.CLIENT_CONNECT


@dataclass(frozen=True)
class ClientData(ClientEvent):
    """
    A complete message.

    ``data`` holds the bytes before the terminator, terminator excluded.
    On the ^D path the connection is already closed when this fires.
    """
    kind: ClassVar[EventKind] = EventKind.CLIENT_DATA
    data: bytes = b""

    @property
    def text(self) -> str:
        return self.data.decode("ascii", errors="replace")


@dataclass(frozen=True)
class ClientEnd(ClientEvent):
    kind: ClassVar[EventKind] = EventKind.CLIENT_END


@dataclass(frozen=True)
class ClientError(ClientEvent):
    kind: ClassVar[EventKind] = EventKind.CLIENT_ERROR


@dataclass(frozen=True)
class ClientOverflow(ClientEvent):
    kind: ClassVar[EventKind] = EventKind.CLIENT_OVERFLOW


@dataclass(frozen=True)
class ClientTimeout(ClientEvent):
    kind: ClassVar[EventKind] = EventKind.CLIENT_TIMEOUT


EventHandler = Callable[[Event], None]
