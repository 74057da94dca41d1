"""
pytest configuration and fixtures.
"""

import json
import socket
import threading
from typing import Callable, Dict, Generator, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig, handle_connection
from minihttp.core import Connection
from minihttp.http import Router, RouteTable, ResultKind


class Reply:
    """A raw HTTP response split into its parts."""

    def __init__(self, raw: bytes):
        self.raw = raw
        head, _, self.body = raw.partition(b"\r\n\r\n")
        lines = head.decode("utf-8").split("\r\n")

        self.version, code, self.reason = lines[0].split(" ", 2)
        self.status = int(code)

        self.headers: Dict[str, str] = {}
        for line in lines[1:]:
            name, _, value = line.partition(": ")
            self.headers[name] = value

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    @property
    def text(self) -> str:
        """Body without the trailing newline every response carries."""
        return self.body.decode("utf-8")[:-1]

    def json(self):
        return json.loads(self.text)


def read_all(sock: socket.socket) -> bytes:
    """Read from `sock` until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def build_router() -> Router:
    """Routes shared by the pipeline and server tests."""
    router = Router()

    @router.get("/", kind=ResultKind.TEXT)
    def index(body):
        return "hi"

    @router.post("/sum", kind=ResultKind.JSON)
    def total(body):
        return sum(body["data"])

    @router.post("/echo")
    def echo(body):
        return body

    @router.get("/fail")
    def fail(body):
        raise ValueError("boom")

    return router


@pytest.fixture
def router() -> Router:
    return build_router()


@pytest.fixture
def routes(router: Router) -> RouteTable:
    """Frozen route table built from the `router` fixture."""
    return router.freeze()


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return b"GET / HTTP/1.1\r\n\r\n"


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"data":[1,2]}'
    head = (
        "POST /sum HTTP/1.1\r\n"
        "Host: localhost:2000\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    )
    return head.encode() + body


@pytest.fixture
def socket_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """Connected (server_side, client_side) sockets, closed afterwards."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


@pytest.fixture
def exchange(socket_pair, routes) -> Callable[..., Reply]:
    """
    Run one request through handle_connection() without a listener.

    The client half sends `raw` and half-closes, the server half is
    served synchronously, then the full reply is read back:

        reply = exchange(b"GET / HTTP/1.1\\r\\n\\r\\n")
        assert reply.status == 200
    """
    server_side, client_side = socket_pair

    def run(raw: bytes, table=None) -> Reply:
        client_side.sendall(raw)
        client_side.shutdown(socket.SHUT_WR)

        conn = Connection(socket=server_side, address=("127.0.0.1", 50000))
        handle_connection(conn, routes if table is None else table)

        return Reply(read_all(client_side))

    return run


# =============================================================================
# LIVE SERVER
# =============================================================================

class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server and wait for the accept loop to exit."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def request(self, raw: bytes, timeout: float = 5.0, half_close: bool = True) -> Reply:
        """
        Send one raw request over TCP and return the parsed reply.

        With half_close=False the client keeps its write side open, so the
        server only ever sees the bytes in `raw`.
        """
        with socket.create_connection(self.address, timeout=timeout) as sock:
            sock.sendall(raw)
            if half_close:
                sock.shutdown(socket.SHUT_WR)
            return Reply(read_all(sock))


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        accept_poll_interval=0.1,
        log_level="WARNING",
    )


@pytest.fixture
def test_server(config: ServerConfig, router: Router) -> Generator[TestServer, None, None]:
    """A running HTTPServer serving build_router()'s routes."""
    test_srv = TestServer(HTTPServer(config, router=router))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def server_factory(router: Router) -> Generator[Callable[..., TestServer], None, None]:
    """
    Start servers with custom configs; all are stopped at teardown.

        server = server_factory(timeout=0.2)
    """
    started = []

    def start(**overrides) -> TestServer:
        options = dict(port=0, accept_poll_interval=0.1, log_level="WARNING")
        options.update(overrides)
        test_srv = TestServer(HTTPServer(ServerConfig(**options), router=router))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()
