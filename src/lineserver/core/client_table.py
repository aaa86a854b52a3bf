"""
=============================================================================
CLIENT TABLE
=============================================================================

A fixed number of client slots, each able to hold one live connection and
one input buffer.

=============================================================================
SLOTS, NOT CONNECTIONS
=============================================================================

The table never grows. It is created with max_clients slots and a new
connection takes the FIRST free one (lowest index):

    index:   0        1        2        3
           ┌────────┬────────┬────────┬────────┐
    socket │ sock A │  None  │ sock C │  None  │
           ├────────┼────────┼────────┼────────┤
    buffer │ [....] │ [....] │ [....] │  None  │
           └────────┴────────┴────────┴────────┘
                        ▲                  ▲
                        │                  └── never used yet, no buffer
                        └── next accept lands here, buffer is reused

A slot is free when its socket is None. Nothing else decides that.

=============================================================================
BUFFER POOL
=============================================================================

Buffers belong to slot INDEXES, not to connections. The first connection
on slot 1 allocates slot 1's buffer; every later connection on slot 1
reuses it. Buffers are only released when the whole table is closed.

    connect on slot 1   → pool.acquire(1)   allocates 1024 bytes
    drop slot 1         → socket closed, buffer kept
    connect on slot 1   → pool.acquire(1)   same bytearray again

This keeps memory use flat no matter how many clients come and go.

=============================================================================
"""

import socket
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from ..errors import BufferAllocationError
from .poller import ReadinessPoller


logger = logging.getLogger(__name__)


def close_socket(sock: socket.socket) -> None:
    """Shut down both directions and close ``sock``."""
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass  # Peer already gone
    try:
        sock.close()
    except OSError:
        pass


class BufferPool:
    """
    Index-addressed pool of fixed-size bytearrays.

    Each index gets at most one buffer for the lifetime of the pool.
    """

    def __init__(self, slots: int, buffer_size: int):
        self.buffer_size = buffer_size
        self._buffers: List[Optional[bytearray]] = [None] * slots

    def acquire(self, index: int) -> bytearray:
        """
        Return the buffer for ``index``, allocating it on first use.

        Raises:
            BufferAllocationError: The allocation failed.
        """
        buffer = self._buffers[index]
        if buffer is None:
            try:
                buffer = bytearray(self.buffer_size)
            except MemoryError as e:
                logger.error(f"Memory error allocating slot {index} buffer")
                raise BufferAllocationError(
                    f"Cannot allocate {self.buffer_size} byte buffer for slot {index}"
                ) from e
            self._buffers[index] = buffer
        return buffer

    def get(self, index: int) -> Optional[bytearray]:
        return self._buffers[index]

    @property
    def allocated(self) -> int:
        """Number of indexes that currently hold a buffer."""
        return sum(1 for buffer in self._buffers if buffer is not None)

    def release_all(self) -> None:
        self._buffers = [None] * len(self._buffers)


@dataclass
class ClientSlot:
    """
    One entry of the client table.

    Attributes:
        index: Position in the table. Never changes.
        id: Identity of the current occupant (index + 1).
        socket: The client socket, or None when the slot is free.
        buffer: Input buffer from the pool, None until first use.
        used: Number of valid bytes at the start of buffer.
        terminator_offset: Where the last terminator was found.
        peer_address: Client IP captured at accept.
        peer_port: Client port captured at accept.
        idle_ticks: Clock ticks since the last received byte.
    """

    index: int
    id: int = 0
    # Quoted: the field name shadows the socket module inside the class body
    socket: Optional["socket.socket"] = None
    buffer: Optional[bytearray] = field(default=None, repr=False)
    used: int = 0
    terminator_offset: int = 0
    peer_address: str = ""
    peer_port: int = 0
    idle_ticks: int = 0

    @property
    def is_free(self) -> bool:
        return self.socket is None

    @property
    def free_space(self) -> int:
        """Bytes left in the buffer."""
        if self.buffer is None:
            return 0
        return len(self.buffer) - self.used

    def clear(self) -> None:
        """Forget everything buffered so far."""
        self.used = 0


class ClientView:
    """
    Read-only face of a slot, handed to the event handler.

    The handler can look at the client and talk to it but cannot change
    the table's bookkeeping. The view reads the live slot, so after a drop
    ``is_connected`` turns False and ``send()`` quietly fails.
    """

    __slots__ = ("_slot", "_table")

    def __init__(self, slot: ClientSlot, table: "ClientTable"):
        self._slot = slot
        self._table = table

    @property
    def id(self) -> int:
        return self._slot.id

    @property
    def index(self) -> int:
        return self._slot.index

    @property
    def peer_address(self) -> str:
        return self._slot.peer_address

    @property
    def peer_port(self) -> int:
        return self._slot.peer_port

    @property
    def idle_ticks(self) -> int:
        return self._slot.idle_ticks

    @property
    def buffered(self) -> bytes:
        """Copy of the bytes currently held in the slot buffer."""
        if self._slot.buffer is None:
            return b""
        return bytes(self._slot.buffer[:self._slot.used])

    @property
    def is_connected(self) -> bool:
        return self._slot.socket is not None

    def send(self, data: bytes) -> bool:
        """
        Send ``data`` straight to the client.

        This is a plain blocking sendall(): a client that does not read
        stalls the whole reactor.

        Returns:
            True if the data was sent, False if the connection is gone.
        """
        sock = self._slot.socket
        if sock is None:
            logger.debug(f"Client {self._slot.id} send on closed connection ignored")
            return False
        try:
            sock.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"Client {self._slot.id} send failed: {e}")
            return False

    def drop(self) -> None:
        """Ask the server to close this connection."""
        self._table.drop(self._slot)

    def __repr__(self) -> str:
        state = "connected" if self.is_connected else "closed"
        return f"<ClientView id={self.id} {self.peer_address}:{self.peer_port} {state}>"


class ClientTable:
    """
    Fixed-capacity registry of client slots.

    The table owns socket registration with the poller so that claiming a
    slot and watching its socket (or dropping a slot and forgetting its
    socket) always happen together.
    """

    def __init__(self, max_clients: int, buffer_size: int, poller: ReadinessPoller):
        self._poller = poller
        self._pool = BufferPool(max_clients, buffer_size)
        self._slots = [ClientSlot(index=i) for i in range(max_clients)]
        self._views = [ClientView(slot, self) for slot in self._slots]

    # =========================================================================
    # LOOKUP
    # =========================================================================

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def pool(self) -> BufferPool:
        return self._pool

    @property
    def active_count(self) -> int:
        return sum(1 for slot in self._slots if not slot.is_free)

    def __getitem__(self, index: int) -> ClientSlot:
        return self._slots[index]

    def __iter__(self) -> Iterator[ClientSlot]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def occupied(self) -> Iterator[ClientSlot]:
        """
        Yield occupied slots in index order.

        Occupancy is checked as the iteration reaches each slot, so a slot
        dropped by an earlier event in the same pass is skipped.
        """
        for slot in self._slots:
            if not slot.is_free:
                yield slot

    def find_free(self) -> Optional[ClientSlot]:
        """First free slot (lowest index), or None when the table is full."""
        for slot in self._slots:
            if slot.is_free:
                return slot
        return None

    def view(self, slot: ClientSlot) -> ClientView:
        return self._views[slot.index]

    # =========================================================================
    # SLOT LIFECYCLE
    # =========================================================================

    def claim(self, sock: socket.socket, address: Tuple[str, int]) -> Optional[ClientSlot]:
        """
        Bind a freshly accepted socket to the first free slot.

        Returns:
            The claimed slot, or None when every slot is taken. The caller
            owns ``sock`` in that case.
        """
        slot = self.find_free()
        if slot is None:
            return None

        slot.buffer = self._pool.acquire(slot.index)
        slot.id = slot.index + 1
        slot.socket = sock
        slot.peer_address, slot.peer_port = address[0], address[1]
        slot.terminator_offset = 0
        slot.used = 0
        slot.idle_ticks = 0

        self._poller.register(sock)
        logger.debug(f"Client {slot.id} claimed slot {slot.index} for {slot.peer_address}:{slot.peer_port}")
        return slot

    def drop(self, slot: ClientSlot) -> None:
        """
        Close the slot's connection and free the slot.

        Safe to call on a slot that is already free. The buffer stays
        with the slot index for the next occupant.
        """
        sock = slot.socket
        if sock is None:
            return
        self._poller.unregister(sock)
        close_socket(sock)
        slot.socket = None
        logger.debug(f"Client {slot.id} dropped from slot {slot.index}")

    def close(self) -> None:
        """Release every buffer and drop every live connection."""
        self._pool.release_all()
        for slot in self._slots:
            slot.buffer = None
            self.drop(slot)
