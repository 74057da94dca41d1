"""
=============================================================================
MINIHTTP - Minimal HTTP/1.x Server on Raw Sockets
=============================================================================

A small threaded HTTP server for plain-text and JSON endpoints. Each
connection carries exactly one request: read the request line, match
the route, read headers and body, run the handler, answer, close.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttp)
    ├── server.py            # HTTPServer, handle_connection, start_server
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Low-level components
    │   ├── socket_server.py # Listening socket and accept loop
    │   └── connection.py    # Buffered client connection
    └── http/                # HTTP protocol components
        ├── request.py       # Request line / header / body parsing
        ├── router.py        # (method, path) routing
        ├── dispatch.py      # Handler invocation and result tagging
        ├── response.py      # Response serialization
        ├── status_codes.py  # Status table
        └── errors.py        # ProtocolError

=============================================================================
QUICK START
=============================================================================

    from minihttp import Router, start_server

    router = Router()

    @router.get("/")
    def index(body):
        return "hi"

    @router.post("/sum")
    def total(body):
        return sum(body["data"])

    start_server(router, port=2000)

    $ curl localhost:2000/
    hi
    $ curl -H 'Content-Type: application/json' -d '{"data":[1,2,3]}' localhost:2000/sum
    6

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, handle_connection, start_server
from .config import ServerConfig
from .http import ProtocolError, Router, ResultKind, Text, Structured

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "Router",
    "ResultKind",
    "Text",
    "Structured",
    "ProtocolError",
    "handle_connection",
    "start_server",
    "__version__",
]
