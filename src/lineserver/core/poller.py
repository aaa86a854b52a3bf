"""
=============================================================================
READINESS MULTIPLEXER
=============================================================================

One thread, many sockets. Instead of blocking in recv() on one client while
the others wait, the reactor asks the OS which sockets have something to
read and only touches those.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        poll(timeout=1.0)                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   registered:  [listen] [client 1] [client 2] [client 3]            │
    │                                                                      │
    │   ready:       {listen, client 2}     → accept + read client 2      │
    │   ready:       {}                     → timeout, check the clock    │
    │   OSError                             → PollError (fatal)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The timeout keeps the loop turning when nothing happens, so the once a
minute clock still gets serviced on an idle server.

selectors.DefaultSelector picks the best primitive for the platform
(epoll on Linux, kqueue on BSD/macOS, select elsewhere).

=============================================================================
"""

import logging
import selectors
import socket
from typing import Callable, Optional, Set

from ..errors import PollError


logger = logging.getLogger(__name__)


class ReadinessPoller:
    """
    Thin wrapper over a selector that only cares about read readiness.

    poll() returns the set of ready socket objects so callers can test
    membership with ``sock in ready``.
    """

    def __init__(self, selector_factory: Callable[[], selectors.BaseSelector] = selectors.DefaultSelector):
        self._selector = selector_factory()

    def register(self, sock: socket.socket) -> None:
        """Start watching ``sock`` for readable state."""
        self._selector.register(sock, selectors.EVENT_READ)

    def unregister(self, sock: socket.socket) -> None:
        """Stop watching ``sock``. Unknown sockets are ignored."""
        try:
            self._selector.unregister(sock)
        except (KeyError, ValueError):
            # ValueError: the socket was closed before it was unregistered
            pass

    def poll(self, timeout: Optional[float]) -> Set[socket.socket]:
        """
        Wait up to ``timeout`` seconds for readable sockets.

        Returns:
            The ready sockets; empty when the timeout elapsed.

        Raises:
            PollError: The underlying selector failed. The reactor cannot
                       continue without it.
        """
        try:
            events = self._selector.select(timeout)
        except OSError as e:
            logger.error(f"Select error {e}")
            raise PollError(f"Readiness polling failed: {e}") from e
        return {key.fileobj for key, mask in events if mask & selectors.EVENT_READ}

    def __len__(self) -> int:
        """Number of registered sockets."""
        return len(self._selector.get_map())

    def close(self) -> None:
        self._selector.close()
