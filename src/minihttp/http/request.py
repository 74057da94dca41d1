"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads an HTTP/1.x request off a connection's byte stream, one stage at a
time. Unlike a "read everything, then parse" design, each stage consumes
only what it needs, so the route can be looked up right after the first
line and a bad request can be rejected before its headers are read.

=============================================================================
REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ── parse_request_line() ───────────────────────┐  │
    │  │    POST /sum HTTP/1.1\r\n                                     │  │
    │  │    ─┬── ──┬─ ────┬───                                         │  │
    │  │   Method Path  Version ("1.1", prefix stripped)              │  │
    │  └───────────────────────────────────────────────────────────────┘  │
    │                                                                      │
    │  ┌─ HEADERS ─────── parse_headers() + validate_headers() ───────┐  │
    │  │    Content-Type: application/json\r\n                         │  │
    │  │    Content-Length: 14\r\n                                     │  │
    │  │    \r\n                        ← empty line ends headers      │  │
    │  └───────────────────────────────────────────────────────────────┘  │
    │                                                                      │
    │  ┌─ BODY ────────── read_body() ────────────────────────────────┐  │
    │  │    {"data":[1,2]}              ← exactly Content-Length bytes │  │
    │  └───────────────────────────────────────────────────────────────┘  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHAT IS ACCEPTED
=============================================================================

    Request line    exactly three whitespace-separated tokens, a path
                    starting with "/", and HTTP/1.0 or HTTP/1.1
    Headers         "Name: Value" lines; names kept exactly as received
                    (no lowercasing), later duplicates overwrite earlier
    Body            only with Content-Length, and then only as
                    application/json or text/plain

Everything else is rejected with a ProtocolError.

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Dict, Protocol
import json
import logging

from .errors import ProtocolError
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# Content types a request body may carry
JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain"
ACCEPTED_CONTENT_TYPES = (JSON_CONTENT_TYPE, TEXT_CONTENT_TYPE)

SUPPORTED_VERSIONS = ("1.0", "1.1")


class ByteStream(Protocol):
    """
    The transport as seen by the parser.

    Anything with line reads, fixed-length reads and a single write will
    do; in the server this is core.connection.Connection.
    """

    def readline(self) -> str:
        """Return the next line without its terminator ("" at end of stream)."""
        ...

    def read_exact(self, size: int) -> bytes:
        """Return exactly `size` bytes, or raise EOFError."""
        ...

    def send_response(self, data: bytes) -> bool:
        """Write `data`; return False if the peer is gone."""
        ...


@dataclass(frozen=True)
class Request:
    """
    The parsed request line.

    Built once per connection from the first line and never changed.

    Attributes:
        method:  Request method exactly as sent ("GET", "POST", ...).
        path:    Request target, always starting with "/".
        version: "1.0" or "1.1" (the "HTTP/" prefix is stripped).
    """

    method: str
    path: str
    version: str = "1.1"

    @property
    def route_key(self) -> tuple[str, str]:
        """The (method, path) pair used for routing."""
        return (self.method, self.path)


# =============================================================================
# REQUEST LINE
# =============================================================================

def parse_request_line(stream: ByteStream) -> Request:
    """
    Read and validate the first line of a request.

    =====================================================================
    REQUEST LINE FORMAT
    =====================================================================

        METHOD SP PATH SP HTTP/VERSION CRLF

        "GET /users HTTP/1.1"   → Request("GET", "/users", "1.1")
        "GET /users"            → 400 (two tokens)
        "GET users HTTP/1.1"    → 400 (path must start with "/")
        "GET / HTTP/2.0"        → 400 (only 1.0 and 1.1)

    =====================================================================

    Args:
        stream: Connection stream positioned at the start of a request.

    Returns:
        The parsed Request.

    Raises:
        ProtocolError(400): If the line is malformed.
    """
    line = stream.readline().strip()
    parts = line.split()

    if len(parts) != 3:
        raise ProtocolError(f"Invalid request: {line}", HTTPStatus.BAD_REQUEST)

    method, path, version = parts

    if not path.startswith("/"):
        raise ProtocolError(f"Invalid path: {path}", HTTPStatus.BAD_REQUEST)

    if not version.startswith("HTTP/") or version[len("HTTP/"):] not in SUPPORTED_VERSIONS:
        raise ProtocolError(f"Invalid version: {version}", HTTPStatus.BAD_REQUEST)

    return Request(method=method, path=path, version=version[len("HTTP/"):])


# =============================================================================
# HEADERS
# =============================================================================

def parse_headers(stream: ByteStream) -> Dict[str, str]:
    """
    Read header lines up to (and including) the blank separator line.

    Each line is split on its FIRST colon only, so values may contain
    colons themselves:

        "Host: localhost:2000"  → {"Host": "localhost:2000"}

    Names and values are trimmed but otherwise untouched. A repeated
    header replaces the earlier value. Reaching the end of the stream
    ends the header section just like a blank line.

    Raises:
        ProtocolError(400): If a non-empty line has no colon.
    """
    headers: Dict[str, str] = {}

    while True:
        line = stream.readline().strip()
        if not line:
            break

        name, sep, value = line.partition(":")
        if not sep:
            raise ProtocolError(f"Invalid header: {line}", HTTPStatus.BAD_REQUEST)

        headers[name.strip()] = value.strip()

    return headers


def validate_headers(headers: Dict[str, str]) -> None:
    """
    Check the Content-Type / Content-Length contract.

    A body is announced by Content-Length; when it is, the server must
    also know how to decode it:

        ┌─────────────────┬──────────────────────────┬────────────┐
        │ Content-Length  │ Content-Type             │ Result     │
        ├─────────────────┼──────────────────────────┼────────────┤
        │ absent          │ (anything)               │ ok         │
        │ present         │ absent                   │ 400        │
        │ present         │ application/json         │ ok         │
        │ present         │ text/plain               │ ok         │
        │ present         │ anything else            │ 400        │
        └─────────────────┴──────────────────────────┴────────────┘

    Pure check: nothing is read from the stream.
    """
    if "Content-Length" not in headers:
        return

    if "Content-Type" not in headers:
        raise ProtocolError("Missing 'Content-Type' field", HTTPStatus.BAD_REQUEST)

    if headers["Content-Type"] not in ACCEPTED_CONTENT_TYPES:
        raise ProtocolError(
            "Only JSON and plain text content are accepted.",
            HTTPStatus.BAD_REQUEST,
        )


# =============================================================================
# BODY
# =============================================================================

def _reject_constant(name: str) -> Any:
    """json.loads hook: NaN, Infinity and -Infinity are not JSON."""
    raise ValueError(f"invalid JSON constant: {name}")


def read_body(stream: ByteStream, headers: Dict[str, str]) -> Any:
    """
    Read and decode the request body.

    Expects headers that already passed validate_headers().

    Returns:
        None if there is no Content-Length header, the decoded JSON value
        for application/json, or the text for text/plain.

    Raises:
        ProtocolError(500): If the length is not plain decimal digits, the
            stream ends early, or the payload cannot be decoded (including
            the non-JSON constants NaN and Infinity).
    """
    if "Content-Length" not in headers:
        return None

    try:
        value = headers["Content-Length"]
        # int() would also take "+5", " 5" and "1_0"
        if not (value.isascii() and value.isdigit()):
            raise ValueError(f"invalid Content-Length: {value!r}")
        length = int(value)

        raw = stream.read_exact(length)

        if headers["Content-Type"] == JSON_CONTENT_TYPE:
            return json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
        return raw.decode("utf-8")
    except (ValueError, EOFError, OSError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
        raise ProtocolError(
            f"Error when parsing body: {e}",
            HTTPStatus.INTERNAL_SERVER_ERROR,
        ) from e
