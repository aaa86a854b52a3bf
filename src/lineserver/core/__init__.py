"""
=============================================================================
CORE COMPONENTS
=============================================================================

The building blocks of the reactor, leaves first:

    poller.py        ReadinessPoller   which sockets can be read?
    client_table.py  ClientTable       fixed slots + pooled buffers
    framer.py        Framer            bytes → messages
    clock.py         TimeoutClock      minute ticks, idle ageing
    reactor.py       Reactor           the loop tying them together

reactor.py is imported as ``lineserver.core.reactor`` (or from the top
level package); it depends on ``lineserver.events``, which in turn depends
on the client table here, so it is kept out of this module.

=============================================================================
"""

from .poller import ReadinessPoller
from .client_table import BufferPool, ClientSlot, ClientTable, ClientView
from .framer import Frame, FrameKind, Framer, find_terminator
from .clock import TimeoutClock

__all__ = [
    "ReadinessPoller",  # selectors wrapper, read readiness only
    "BufferPool",       # per-index buffers, allocated once
    "ClientSlot",       # one table entry
    "ClientTable",      # fixed-capacity slot registry
    "ClientView",       # read-only slot handle given to handlers
    "Frame",
    "FrameKind",
    "Framer",           # recv + terminator scan
    "find_terminator",
    "TimeoutClock",     # tick boundaries and idle timeouts
]
