"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The per-request protocol pipeline, one module per stage:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       parse_request_line → parse_headers →               │
    │                  validate_headers → read_body                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │ router.py        Router (registration) and RouteTable (lookup)      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ dispatch.py      run the handler, tag its result Text / Structured  │
    ├─────────────────────────────────────────────────────────────────────┤
    │ response.py      status line + Content-Type + Content-Length + body │
    ├─────────────────────────────────────────────────────────────────────┤
    │ status_codes.py  code → reason phrase                               │
    │ errors.py        ProtocolError (code + message)                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .errors import ProtocolError
from .request import (
    Request,
    ByteStream,
    parse_request_line,
    parse_headers,
    validate_headers,
    read_body,
    JSON_CONTENT_TYPE,
    TEXT_CONTENT_TYPE,
)
from .router import Router, RouteTable, Route, ResultKind, Handler
from .dispatch import dispatch, Text, Structured
from .response import HTTPResponse, build_response, write_response
from .status_codes import HTTPStatus, STATUS_TEXT

__all__ = [
    # Errors
    "ProtocolError",

    # Request parsing
    "Request",
    "ByteStream",
    "parse_request_line",
    "parse_headers",
    "validate_headers",
    "read_body",
    "JSON_CONTENT_TYPE",
    "TEXT_CONTENT_TYPE",

    # Routing
    "Router",
    "RouteTable",
    "Route",
    "ResultKind",
    "Handler",

    # Dispatch
    "dispatch",
    "Text",
    "Structured",

    # Responses
    "HTTPResponse",
    "build_response",
    "write_response",

    # Status codes
    "HTTPStatus",
    "STATUS_TEXT",
]
