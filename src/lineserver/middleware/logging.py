"""
=============================================================================
EVENT LOGGING MIDDLEWARE
=============================================================================

Writes one line per event to the ``lineserver.events`` logger, as plain
text for people or JSON for log collectors.

    text:  127.0.0.1:51532 client=3 client_data bytes=5 0.04ms
    json:  {"event": "client_data", "client_id": 3, "peer": "127.0.0.1:51532",
            "size": 5, "duration_ms": 0.04, "timestamp": "..."}

The log goes through the logging module, so it ends up on stderr next to
the server's own diagnostics and never on a client socket.

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..events import ClientData, ClientEvent, Event, EventKind


# Namespaced so the event log can be routed or silenced on its own:
#   logging.getLogger("lineserver.events").setLevel(logging.WARNING)
logger = logging.getLogger("lineserver.events")


@dataclass
class EventLog:
    """
    Structured log entry for one event.

    client_id and peer are None/"-" for TimerExpired; size is the message
    length for ClientData and 0 otherwise.
    """

    event: str
    client_id: Optional[int]
    peer: str
    size: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "event": self.event,
            "client_id": self.client_id,
            "peer": self.peer,
            "size": self.size,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        client = f"client={self.client_id}" if self.client_id is not None else "client=-"
        return f"{self.peer} {client} {self.event} bytes={self.size} {self.duration_ms:.2f}ms"


class EventLoggingMiddleware(Middleware):
    """
    Event logging middleware.

    Usage:
        server.use(EventLoggingMiddleware())
        server.use(EventLoggingMiddleware(log_format="json"))
        server.use(EventLoggingMiddleware(skip_kinds=[EventKind.TIMER_EXPIRED]))
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_kinds: Optional[Iterable[EventKind]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level the entries are logged at.
            skip_kinds: Event kinds not worth a line (TimerExpired is the
                        usual candidate on a quiet server).
        """
        self.log_format = log_format
        self.log_level = log_level
        self.skip_kinds = set(skip_kinds or [])

    def __call__(self, event: Event, next: NextHandler) -> None:
        start_time = time.time()

        # A failing handler propagates unlogged; the reactor reports it
        next(event)

        duration_ms = (time.time() - start_time) * 1000

        if event.kind in self.skip_kinds:
            return

        log_entry = self.build_entry(event, duration_ms)
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

    @staticmethod
    def build_entry(event: Event, duration_ms: float) -> EventLog:
        client_id = None
        peer = "-"
        if isinstance(event, ClientEvent):
            client_id = event.client.id
            peer = f"{event.client.peer_address}:{event.client.peer_port}"

        return EventLog(
            event=event.kind.value,
            client_id=client_id,
            peer=peer,
            size=len(event.data) if isinstance(event, ClientData) else 0,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )
