"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties the pieces together: the socket server accepts, one thread per
connection runs the request pipeline, the route table decides which
handler answers.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │   Threads    │    │  RouteTable  │        │
    │    │  (accepts)   │    │ (1 per conn) │    │ (read-only)  │        │
    │    └──────────────┘    └──────┬───────┘    └──────────────┘        │
    │                               ▼                                     │
    │                      handle_connection()                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE (handle_connection)
=============================================================================

    1. parse_request_line()      ACCEPTED       → LINE_PARSED
    2. route_table.lookup()      LINE_PARSED    → ROUTE_MATCHED   (404)
    3. parse_headers()           ROUTE_MATCHED  → HEADERS_PARSED  (400)
    4. validate_headers()        HEADERS_PARSED → HEADERS_VALID   (400)
    5. read_body()               HEADERS_VALID  → BODY_READ       (500)
    6. dispatch()                BODY_READ      → DISPATCHED      (500)
    7. write_response()                         → RESPONDED
    8. close()                                  → CLOSED

The route is looked up BEFORE the headers are read: a request for an
unknown path gets 404 even if its headers are garbage.

Any ProtocolError jumps straight to step 7 with its own code; any other
exception jumps to step 7 with 500. Either way exactly one response is
written and the connection is closed.

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState
from .http import (
    ProtocolError,
    HTTPStatus,
    Router,
    RouteTable,
    ResultKind,
    TEXT_CONTENT_TYPE,
    parse_request_line,
    parse_headers,
    validate_headers,
    read_body,
    dispatch,
    write_response,
)


logger = logging.getLogger(__name__)


def handle_connection(conn: Connection, routes: RouteTable) -> None:
    """
    Serve exactly one request on `conn`, then close it.

    Runs on the connection's own thread. Never raises: every failure is
    turned into an error response (or, if even writing fails, a log line).

    Args:
        conn: The accepted client connection.
        routes: Read-only route table shared by all connections.
    """
    with conn:  # Context manager ensures the connection is closed
        content_type = TEXT_CONTENT_TYPE
        try:
            request = parse_request_line(conn)
            conn.state = ConnectionState.LINE_PARSED
            logger.debug(f"[{conn.id}] Request parsed: {request.method} {request.path} HTTP/{request.version}")

            route = routes.lookup(request)
            conn.state = ConnectionState.ROUTE_MATCHED

            headers = parse_headers(conn)
            conn.state = ConnectionState.HEADERS_PARSED
            logger.debug(f"[{conn.id}] Headers parsed: {headers}")

            validate_headers(headers)
            conn.state = ConnectionState.HEADERS_VALID

            body = read_body(conn, headers)
            conn.state = ConnectionState.BODY_READ

            message, content_type = dispatch(route, body)
            conn.state = ConnectionState.DISPATCHED
            code = HTTPStatus.OK

        except ProtocolError as e:
            logger.debug(f"[{conn.id}] Error: {e!r}")
            code, message, content_type = e.code, e.message, TEXT_CONTENT_TYPE

        except Exception as e:
            logger.exception(f"[{conn.id}] Unhandled error while serving request")
            code, message, content_type = (
                HTTPStatus.INTERNAL_SERVER_ERROR,
                f"Internal server error: {e}",
                TEXT_CONTENT_TYPE,
            )

        try:
            write_response(conn, code, message, content_type)
        except Exception:
            logger.exception(f"[{conn.id}] Failed to write {code} response")

        conn.state = ConnectionState.RESPONDED
        logger.info(f"[{conn.id}] {conn.client_ip}:{conn.client_port} -> {int(code)}")


class HTTPServer:
    """
    Multi-threaded HTTP/1.x server for (method, path) routes.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=2000))

        @server.get("/")
        def index(body):
            return "hi"

        @server.post("/sum")
        def total(body):
            return sum(body["data"])

        server.run()   # blocks until Ctrl+C / SIGTERM / server.shutdown()

    Routes may also come from a prebuilt Router:

        server = HTTPServer(config, router=my_router)

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults if not provided.
            router: Routes to serve. A new empty Router if not provided.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self._router = router if router is not None else Router()

        # Frozen snapshot handed to connection threads (built in run())
        self._routes: Optional[RouteTable] = None
        self._running = False

    @property
    def router(self) -> Router:
        return self._router

    @property
    def routes(self) -> Optional[RouteTable]:
        """The frozen route table, or None before run()."""
        return self._routes

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    # =========================================================================
    # ROUTE REGISTRATION (Decorator Style)
    # =========================================================================

    def add_route(self, method: str, path: str, handler, kind: ResultKind = ResultKind.AUTO):
        """Register a handler for (method, path)."""
        return self._router.add_route(method, path, handler, kind)

    def route(self, method: str, path: str, kind: ResultKind = ResultKind.AUTO):
        return self._router.route(method, path, kind)

    def get(self, path: str, kind: ResultKind = ResultKind.AUTO):
        return self._router.get(path, kind)

    def post(self, path: str, kind: ResultKind = ResultKind.AUTO):
        return self._router.post(path, kind)

    def put(self, path: str, kind: ResultKind = ResultKind.AUTO):
        return self._router.put(path, kind)

    def delete(self, path: str, kind: ResultKind = ResultKind.AUTO):
        return self._router.delete(path, kind)

    def patch(self, path: str, kind: ResultKind = ResultKind.AUTO):
        return self._router.patch(path, kind)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Freezes the router, then accepts connections until shutdown() is
        called or SIGINT/SIGTERM arrives (main thread only).

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            ValueError: If the resulting config is invalid.
            OSError: If the port cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port
        self.config.validate()  # Overrides get the same checks as __init__

        self._setup_logging()

        self._routes = self._router.freeze()
        self._running = True

        logger.info(f"Starting HTTP server on {self.config.host}:{self.config.port} "
                    f"with {len(self._routes)} route(s)")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._running = False
            logger.info("Server stopped")

    def shutdown(self):
        """
        Stop accepting connections.

        In-flight connections are not waited for; their threads finish
        (or not) on their own. Called before run(), it makes that run()
        return as soon as the socket is bound.
        """
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. Returns False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("minihttp").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Start a thread for a freshly accepted connection.

        Called by SocketServer on the accept thread, so it only spawns
        and returns.
        """
        worker = threading.Thread(
            target=handle_connection,
            args=(conn, self._routes),
            name=f"minihttp-conn-{conn.id}",
            daemon=True,
        )
        worker.start()


def start_server(router: Router, port: int = 2000, host: str = "127.0.0.1") -> None:
    """
    Serve `router` on host:port until interrupted.

    Convenience wrapper around HTTPServer for the common case:

        router = Router()
        router.add_route("GET", "/", lambda body: "hi")
        start_server(router, port=2000)
    """
    HTTPServer(ServerConfig(host=host, port=port), router=router).run()
