"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an accepted client socket with the three operations the request
pipeline needs: read a line, read exactly N bytes, write once.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    send(b"GET / HTTP/1.1\r\n\r\n")

may be received as

    recv() → b"GET / HT"
    recv() → b"TP/1.1\r\n\r\n"

So the connection keeps a buffer: readline() pulls chunks until it sees
"\n", read_exact() pulls chunks until it has enough bytes, and anything
left over stays buffered for the next call.

    ┌─────────────────────────────────────────────────────────────────┐
    │                    Connection._buffer                            │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   recv() ──► [ POST /sum HTTP/1.1\r\nContent-Ty ]               │
    │                 └──── readline() ───┘└─ stays ─┘                 │
    │                                                                  │
    │   recv() ──► [ Content-Type: application/json\r\nCon ]          │
    │                 └──────── readline() ──────────┘                 │
    │   ...                                                            │
    │   recv() ──► [ {"data":[1,2]} ]                                  │
    │                 └ read_exact(14) ┘                               │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

One request per connection, no keep-alive:

    ACCEPTED ──► LINE_PARSED ──► ROUTE_MATCHED ──► HEADERS_PARSED
                                                         │
        ┌────────────────────────────────────────────────┘
        ▼
    HEADERS_VALID ──► BODY_READ ──► DISPATCHED ──► RESPONDED ──► CLOSED
                                                       ▲
    (any failure in any earlier state) ────────────────┘

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in the request pipeline."""
    ACCEPTED = "accepted"              # Just accepted, nothing read yet
    LINE_PARSED = "line_parsed"        # Request line read and valid
    ROUTE_MATCHED = "route_matched"    # (method, path) found in route table
    HEADERS_PARSED = "headers_parsed"  # Header block read
    HEADERS_VALID = "headers_valid"    # Content-Type/Length contract holds
    BODY_READ = "body_read"            # Body read and decoded (or absent)
    DISPATCHED = "dispatched"          # Handler ran, result rendered
    RESPONDED = "responded"            # Response written (success or error)
    CLOSED = "closed"                  # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique id used to tag log lines.
        state: Current pipeline state.
        created_at: Timestamp when the connection was accepted.
        bytes_read: Total bytes received from the client.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACCEPTED
    created_at: float = field(default_factory=time.time)
    bytes_read: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192           # How much to read at once
    timeout: Optional[float] = None   # None = block forever

    # Internal state (not shown in repr for cleaner logs)
    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # Accepted sockets inherit the listener's accept timeout on some
        # platforms; reset to blocking, then apply our own timeout.
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def client_port(self) -> int:
        return self.address[1] if len(self.address) > 1 else 0

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def readline(self) -> str:
        """
        Read one line from the client.

        Returns:
            The line without its trailing "\\n" (a "\\r" before it is left
            for the caller to strip). At end of stream, whatever was
            buffered, which is "" if nothing was.
        """
        while b"\n" not in self._buffer:
            chunk = self._recv()
            if not chunk:
                # Client closed: hand back the partial line (maybe empty)
                line, self._buffer = self._buffer, b""
                return line.decode("utf-8", errors="replace")
            self._buffer += chunk

        line, _, self._buffer = self._buffer.partition(b"\n")
        return line.decode("utf-8", errors="replace")

    def read_exact(self, size: int) -> bytes:
        """
        Read exactly `size` bytes from the client.

        Raises:
            EOFError: If the client closes before `size` bytes arrive.
        """
        while len(self._buffer) < size:
            chunk = self._recv()
            if not chunk:
                raise EOFError(
                    f"connection closed after {len(self._buffer)} of {size} bytes"
                )
            self._buffer += chunk

        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def _recv(self) -> bytes:
        """
        Receive one chunk from the socket.

        Returns:
            Received bytes, or b"" if the client closed or reset the
            connection. Timeouts propagate.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.bytes_read += len(data)
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall() so the whole response goes out, not just whatever
        fits in the kernel buffer.

        Returns:
            True if the send succeeded, False if the client is gone.
        """
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection.

        1. shutdown(SHUT_WR) sends FIN so the client sees end-of-response.
        2. Drain whatever the client sent that we never read (a body
           behind a 404, say), otherwise close() may send RST and the
           client can lose the response.
        3. close() releases the descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # socket.timeout is an OSError too

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
