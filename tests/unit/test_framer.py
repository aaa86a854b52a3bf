"""
Unit tests for message framing.
"""

import socket

import pytest

from lineserver.core.client_table import ClientSlot
from lineserver.core.framer import Frame, FrameKind, Framer, find_terminator
from lineserver.errors import InternalStateError


@pytest.fixture
def pair():
    """Connected (server side, client side) sockets."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


def make_slot(sock: socket.socket, size: int = 16) -> ClientSlot:
    return ClientSlot(index=0, id=1, socket=sock, buffer=bytearray(size))


class TestFindTerminator:
    """Tests for the terminator scan."""

    def test_line_feed(self):
        assert find_terminator(bytearray(b"hello\nrest"), 10) == 5

    def test_carriage_return(self):
        assert find_terminator(bytearray(b"hi\r\n"), 4) == 2

    def test_end_of_transmission(self):
        assert find_terminator(bytearray(b"bye\x04"), 4) == 3

    def test_first_terminator_wins(self):
        assert find_terminator(bytearray(b"a\x04b\n"), 4) == 1

    def test_nul_is_not_a_terminator(self):
        assert find_terminator(bytearray(b"a\x00b\n"), 4) == 3
        assert find_terminator(bytearray(b"\x00\x00"), 2) == -1

    def test_only_used_part_is_scanned(self):
        buffer = bytearray(b"abc\n")
        assert find_terminator(buffer, 3) == -1
        assert find_terminator(buffer, 4) == 3

    def test_empty(self):
        assert find_terminator(bytearray(8), 0) == -1


class TestFramer:
    """Tests for Framer.read()."""

    def test_line_message(self, pair):
        server_side, client_side = pair
        slot = make_slot(server_side)
        client_side.sendall(b"hello\n")

        frame = Framer().read(slot)

        assert frame == Frame(FrameKind.LINE, b"hello")
        assert slot.terminator_offset == 5
        assert slot.used == 6

    def test_partial_message_waits(self, pair):
        server_side, client_side = pair
        slot = make_slot(server_side)
        framer = Framer()

        client_side.sendall(b"hel")
        assert framer.read(slot).kind is FrameKind.PENDING
        assert slot.used == 3

        client_side.sendall(b"lo\r")
        assert framer.read(slot) == Frame(FrameKind.LINE, b"hello")

    def test_end_of_transmission(self, pair):
        server_side, client_side = pair
        slot = make_slot(server_side)
        client_side.sendall(b"hi\x04")

        frame = Framer().read(slot)

        assert frame == Frame(FrameKind.END, b"hi")
        assert slot.terminator_offset == 2

    def test_bare_end_of_transmission(self, pair):
        server_side, client_side = pair
        slot = make_slot(server_side)
        client_side.sendall(b"\x04")

        assert Framer().read(slot) == Frame(FrameKind.END, b"")

    def test_receive_resets_idle_ticks(self, pair):
        server_side, client_side = pair
        slot = make_slot(server_side)
        slot.idle_ticks = 7
        client_side.sendall(b"x")

        Framer().read(slot)

        assert slot.idle_ticks == 0

    def test_full_buffer_overflows_without_reading(self, pair):
        server_side, client_side = pair
        slot = make_slot(server_side, size=4)
        framer = Framer()

        client_side.sendall(b"abcdef\n")
        assert framer.read(slot).kind is FrameKind.PENDING
        assert slot.used == 4

        assert framer.read(slot).kind is FrameKind.OVERFLOW
        # Nothing was consumed: the rest is still waiting in the socket
        assert slot.used == 4

        slot.clear()
        assert framer.read(slot) == Frame(FrameKind.LINE, b"ef")

    def test_peer_close(self, pair):
        server_side, client_side = pair
        slot = make_slot(server_side)
        client_side.close()

        assert Framer().read(slot).kind is FrameKind.CLOSED

    def test_missing_buffer_is_fatal(self, pair):
        server_side, _ = pair
        slot = ClientSlot(index=3, id=4, socket=server_side)

        with pytest.raises(InternalStateError):
            Framer().read(slot)
