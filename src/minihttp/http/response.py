"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Serializes a status code, content type and payload into an HTTP/1.1
response and writes it to the connection.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

Every response the server sends has exactly this shape:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n              ← status line                     │
    │   Content-Type: text/plain\r\n     ← text/plain or application/json  │
    │   Content-Length: 3\r\n            ← bytes of payload + "\n"         │
    │   \r\n                             ← separator                       │
    │   hi\n                             ← payload, newline-terminated     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

No Date, Server or Connection headers: the connection is always closed
after the response, so the client reads to Content-Length (or EOF).

The trailing newline is part of the body and is counted in
Content-Length, which is computed on the UTF-8 encoding, not on the
number of characters:

    payload "hi"    → body b"hi\n"          → Content-Length: 3
    payload "héllo" → body b"h\xc3\xa9llo\n" → Content-Length: 7

=============================================================================
"""

from dataclasses import dataclass
import logging

from .request import ByteStream, TEXT_CONTENT_TYPE
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class HTTPResponse:
    """
    A response about to be written.

    Lives only long enough to be serialized by to_bytes(). Building one
    with a code missing from the status table raises ValueError.
    """

    status: HTTPStatus = HTTPStatus.OK
    content_type: str = TEXT_CONTENT_TYPE
    message: str = ""
    version: str = "HTTP/1.1"

    def __post_init__(self):
        # Unknown codes fail here, before anything is written
        self.status = HTTPStatus(self.status)

    @property
    def reason(self) -> str:
        return self.status.phrase

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE

        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {self.reason}"

    @property
    def body(self) -> bytes:
        """Payload with its trailing newline, UTF-8 encoded."""
        return (self.message + "\n").encode("utf-8")

    def to_bytes(self) -> bytes:
        """Serialize to the exact bytes sent on the wire."""
        body = self.body
        head = (
            f"{self.status_line}\r\n"
            f"Content-Type: {self.content_type}\r\n"
            f"Content-Length: {len(body)}\r\n"
            f"\r\n"
        )
        return head.encode("utf-8") + body


def build_response(code: int, message: str, content_type: str = TEXT_CONTENT_TYPE) -> bytes:
    """
    Build the wire bytes for a response.

    Raises:
        ValueError: If `code` is not in the status table.
    """
    return HTTPResponse(status=code, content_type=content_type, message=message).to_bytes()


def write_response(
    stream: ByteStream,
    code: int,
    message: str,
    content_type: str = TEXT_CONTENT_TYPE,
) -> bool:
    """
    Serialize a response and write it to the stream in one call.

    Args:
        stream: The connection to write to.
        code: HTTP status code (must be in the status table).
        message: Payload text (the handler output or an error message).
        content_type: "text/plain" (default) or "application/json".

    Returns:
        True if the bytes were sent, False if the peer had gone away.

    Raises:
        ValueError: If `code` is not in the status table.
    """
    data = build_response(code, message, content_type)
    sent = stream.send_response(data)
    logger.debug(f"Wrote {code} response ({len(data)} bytes)")
    return sent
