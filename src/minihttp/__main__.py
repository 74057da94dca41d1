"""
=============================================================================
MINIHTTP CLI ENTRY POINT
=============================================================================

Runs a demo server with three routes:

    GET  /       → "hi"                          (text/plain)
    POST /echo   → the request body, as JSON     (application/json)
    POST /sum    → sum of body["data"]           (application/json)

=============================================================================
USAGE
=============================================================================

    # Run with defaults (127.0.0.1:2000)
    python -m minihttp

    # Custom port
    python -m minihttp --port 3000

    # Listen on all interfaces
    python -m minihttp --host 0.0.0.0

    # See every pipeline stage of every connection
    python -m minihttp --log-level DEBUG

Unset options fall back to HTTP_HOST / HTTP_PORT / HTTP_TIMEOUT /
HTTP_LOG_LEVEL, then to the ServerConfig defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import HTTPServer
from .config import ServerConfig
from .http import Router, ResultKind


def build_demo_router() -> Router:
    """Routes served by `python -m minihttp`."""
    router = Router()

    @router.get("/", kind=ResultKind.TEXT)
    def index(body):
        return "hi"

    @router.post("/echo", kind=ResultKind.JSON)
    def echo(body):
        return body

    @router.post("/sum", kind=ResultKind.JSON)
    def total(body):
        return sum(body["data"])

    return router


def main(argv=None):
    """
    Main CLI entry point.

    - --host, -H: Server host
    - --port, -p: Server port
    - --timeout, -t: Client socket timeout
    - --log-level, -l: Logging verbosity
    - --version, -v: Show version
    """
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.x server for text and JSON endpoints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp                        # Run with defaults
  python -m minihttp --port 3000            # Custom port
  python -m minihttp --host 0.0.0.0         # Listen on all interfaces
  python -m minihttp --log-level DEBUG      # Verbose logging
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 2000, 0 picks a free port)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Seconds to wait on a silent client (default: wait forever)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}"
    )

    args = parser.parse_args(argv)

    # CLI beats environment beats defaults
    config = ServerConfig.from_env()
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.log_level is not None:
        config.log_level = args.log_level

    try:
        server = HTTPServer(config, router=build_demo_router())
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
