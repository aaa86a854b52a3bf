"""
=============================================================================
LINESERVER CLI ENTRY POINT
=============================================================================

Runs the example greeter handler:

    # Defaults (all interfaces, port 6666)
    python -m lineserver

    # Custom port, fewer clients
    python -m lineserver --port 7000 --max-clients 8

    # Structured event log
    python -m lineserver --log-format json

Then try it:

    telnet localhost 6666

Exit status is 1 if the server cannot start or its poll loop fails.

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .config import ServerConfig
from .errors import FatalServerError
from .events import EventKind
from .handlers import GreeterHandler
from .middleware import EventLoggingMiddleware
from .server import LineServer


logger = logging.getLogger("lineserver")


def build_parser() -> argparse.ArgumentParser:
    # LINESERVER_* variables supply the defaults; flags override them
    env = ServerConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="lineserver",
        description="Multi-client line-oriented TCP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m lineserver                      # Run with defaults
  python -m lineserver --port 7000          # Custom port
  python -m lineserver --host 127.0.0.1     # Localhost only
  python -m lineserver --log-format json    # JSON event log
  LINESERVER_PORT=7000 python -m lineserver # Port from the environment
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=env.host,
        help="Host to bind to (default: %(default)s)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=env.port,
        help="Port to listen on (default: %(default)s)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CAPACITY ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-clients", "-m",
        type=int,
        default=env.max_clients,
        help="Maximum simultaneous clients (default: %(default)s)"
    )

    parser.add_argument(
        "--buffer-size", "-b",
        type=int,
        default=env.buffer_size,
        help="Largest message in bytes (default: %(default)s)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=env.log_level.upper(),
        help="Logging level (default: %(default)s)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=env.log_format,
        help="Event log format (default: %(default)s)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"lineserver {__version__}"
    )

    return parser


def main(argv=None) -> int:
    try:
        parser = build_parser()
    except ValueError as e:
        print(f"Error: bad LINESERVER_* environment value: {e}", file=sys.stderr)
        return 2
    args = parser.parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        max_clients=args.max_clients,
        buffer_size=args.buffer_size,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = LineServer(config, GreeterHandler())
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    # The periodic tick would add a line a minute on an idle server
    server.use(EventLoggingMiddleware(
        log_format=config.log_format,
        log_level=logging.DEBUG,
        skip_kinds=[EventKind.TIMER_EXPIRED],
    ))

    try:
        server.run()
    except FatalServerError as e:
        logger.error(f"Fatal: {e}")
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
