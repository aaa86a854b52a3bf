"""
=============================================================================
MESSAGE FRAMING
=============================================================================

TCP delivers a byte stream, not messages. A client typing "hello" into
telnet might arrive as "he" + "llo\r\n", or together with the next line.
The framer accumulates bytes in the slot buffer until it sees a
terminator.

=============================================================================
TERMINATORS
=============================================================================

    \\n    0x0A   line feed        → message, connection stays open
    \\r    0x0D   carriage return  → message, connection stays open
    ^D     0x04   end of transmission → last message, connection closes

NUL bytes are ordinary data. Only the FIRST terminator in the buffer is
used; anything received after it in the same read is thrown away when the
buffer is cleared.

=============================================================================
ONE READ, ONE OUTCOME
=============================================================================

    ┌──────────────────────┐
    │ buffer full?         │── yes ──► OVERFLOW   (no recv this time)
    └──────────┬───────────┘
               │ no
    ┌──────────▼───────────┐
    │ recv_into(free part) │── 0 bytes / error ──► CLOSED
    └──────────┬───────────┘
               │ n bytes
    ┌──────────▼───────────┐
    │ find terminator      │── none ──► PENDING   (wait for more)
    └──────────┬───────────┘
               │
          LF/CR ──► LINE       EOT ──► END

The reactor turns each outcome into events; the framer only reads.

=============================================================================
"""

import re
import logging
from enum import Enum
from typing import NamedTuple

from ..errors import InternalStateError
from .client_table import ClientSlot


logger = logging.getLogger(__name__)


EOT = 0x04

_TERMINATOR = re.compile(rb"[\n\r\x04]")


def find_terminator(buffer: bytearray, used: int) -> int:
    """
    Find the first LF, CR or EOT in ``buffer[:used]``.

    Returns:
        Offset of the terminator, or -1 if there is none yet.
    """
    match = _TERMINATOR.search(buffer, 0, used)
    return match.start() if match else -1


class FrameKind(Enum):
    """What a single read produced."""
    PENDING = "pending"      # Bytes buffered, no terminator yet
    LINE = "line"            # LF or CR terminated message
    END = "end"              # EOT seen, client is finished
    OVERFLOW = "overflow"    # Buffer full without a terminator
    CLOSED = "closed"        # Peer closed or recv failed


class Frame(NamedTuple):
    kind: FrameKind
    data: bytes = b""


class Framer:
    """
    Reads from a ready client socket into its slot buffer.

    Stateless: everything it needs lives on the slot.
    """

    def read(self, slot: ClientSlot) -> Frame:
        """
        Service one readable slot.

        Updates ``used``, ``idle_ticks`` and ``terminator_offset`` on the
        slot. Never clears the buffer; the reactor does that once it has
        dispatched the outcome.

        Raises:
            InternalStateError: The slot has no buffer.
        """
        buffer = slot.buffer
        if buffer is None:
            logger.error("Internal buffer error")
            raise InternalStateError(f"Slot {slot.index} is ready but has no buffer")

        if slot.free_space <= 0:
            return Frame(FrameKind.OVERFLOW)

        try:
            count = slot.socket.recv_into(memoryview(buffer)[slot.used:], slot.free_space)
        except OSError as e:
            logger.warning(f"Client {slot.id} read error: {e}")
            return Frame(FrameKind.CLOSED)

        if count <= 0:
            return Frame(FrameKind.CLOSED)

        slot.used += count
        slot.idle_ticks = 0

        offset = find_terminator(buffer, slot.used)
        if offset < 0:
            return Frame(FrameKind.PENDING)

        slot.terminator_offset = offset
        data = bytes(buffer[:offset])
        if buffer[offset] == EOT:
            return Frame(FrameKind.END, data)
        return Frame(FrameKind.LINE, data)
