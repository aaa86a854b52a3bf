"""
Example handler: a tiny telnet-style command shell.

    $ telnet localhost 6666
    Greetings
    > hello
    Hello
    > path
    /usr/local/bin:/usr/bin:/bin
    > goodby
    Connection closed by foreign host.

Commands are matched by prefix, so "hello there" is still a hello.
"""

import os
import logging

from ..events import (
    ClientConnect,
    ClientData,
    ClientEnd,
    ClientError,
    ClientTimeout,
    Event,
)


logger = logging.getLogger(__name__)


PROMPT = b"\n> "


class GreeterHandler:
    """Replies to hello, path and goodby; everything else gets "Huh?"."""

    greeting = b"Greetings" + PROMPT

    def __call__(self, event: Event) -> None:
        if isinstance(event, ClientConnect):
            client = event.client
            logger.info(f"Client {client.id} connect {client.peer_address}")
            client.send(self.greeting)

        elif isinstance(event, (ClientEnd, ClientError, ClientTimeout)):
            logger.info(f"Client {event.client.id} dropped")

        elif isinstance(event, ClientData):
            self.handle_command(event)

    def handle_command(self, event: ClientData) -> None:
        client = event.client
        data = event.data

        if data.startswith(b"hello"):
            client.send(b"Hello" + PROMPT)

        elif data.startswith(b"path"):
            client.send(os.environ.get("PATH", "").encode("ascii", errors="replace"))
            client.send(PROMPT)

        elif data.startswith(b"goodby"):
            logger.info(f"Client {client.id} said goodby")
            client.drop()

        else:
            client.send(b"Huh?" + PROMPT)
