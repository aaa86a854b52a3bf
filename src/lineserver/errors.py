"""
=============================================================================
FATAL SERVER ERRORS
=============================================================================

Errors the reactor cannot recover from. Anything client-scoped (a reset
connection, an idle client, an overflowing buffer) is reported to the
handler as an event instead and never raised.

    FatalServerError
    ├── ServerSetupError       socket(), bind() or listen() failed
    ├── BufferAllocationError  a slot buffer could not be allocated
    ├── InternalStateError     the client table broke an invariant
    └── PollError              the readiness multiplexer itself failed

The CLI turns any of these into exit status 1.

=============================================================================
"""


class FatalServerError(Exception):
    """Base class for errors that stop the reactor."""

    exit_code = 1


class ServerSetupError(FatalServerError):
    """Creating, binding or listening on the server socket failed."""

    def __init__(self, message: str, port: int):
        super().__init__(message)
        self.port = port


class BufferAllocationError(FatalServerError):
    """A client slot buffer could not be allocated."""


class InternalStateError(FatalServerError):
    """The client table is in a state that should be impossible."""


class PollError(FatalServerError):
    """The readiness multiplexer failed."""
