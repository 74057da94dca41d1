"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status table: numeric status code → reason phrase.

The server only ever needs a handful of codes:

    ┌────────┬───────────────────────────┬──────────────────────────────────┐
    │  Code  │  Reason phrase            │  Produced when                   │
    ├────────┼───────────────────────────┼──────────────────────────────────┤
    │  200   │  OK                       │  Handler ran successfully        │
    │  400   │  Bad Request              │  Bad request line / headers      │
    │  404   │  Not Found                │  No route for (method, path)     │
    │  405   │  Method Not Allowed       │  Never (reserved)                │
    │  500   │  Internal Server Error    │  Body decode or handler failure  │
    └────────┴───────────────────────────┴──────────────────────────────────┘

The reason phrase is the text after the code in the status line:

    HTTP/1.1 404 Not Found
             ─── ─────────
              │      │
              │      └── Reason phrase (from this table)
              └───────── Status code

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes known to the server.

    Being an IntEnum, members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus(404).phrase
        'Not Found'

    Looking up a code that is not in the table raises ValueError, which
    the response writer lets propagate (it is a programming error, not
    something a client can trigger).
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405  # reserved: the dispatcher never emits it
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return STATUS_TEXT[self]

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


STATUS_TEXT = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
