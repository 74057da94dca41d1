"""
=============================================================================
HANDLER DISPATCH
=============================================================================

Calls the matched handler and turns whatever it returns into a
(payload, content_type) pair ready for the response writer.

=============================================================================
HANDLER RESULTS
=============================================================================

A handler can say explicitly what it is returning by wrapping the value:

    return Text("hello")              → "hello",        text/plain
    return Structured({"n": 3})       → '{"n":3}',      application/json

Or it can return a bare value, in which case the route's declared
ResultKind decides:

    ┌──────────┬──────────────────┬───────────────────────────────────────┐
    │  kind    │  bare str        │  bare anything else                   │
    ├──────────┼──────────────────┼───────────────────────────────────────┤
    │  AUTO    │  text/plain      │  application/json                     │
    │  TEXT    │  text/plain      │  error (500)                          │
    │  JSON    │  JSON string     │  application/json                     │
    └──────────┴──────────────────┴───────────────────────────────────────┘

=============================================================================
FAILURES
=============================================================================

Whatever goes wrong in here (the handler raising, a value that is not
JSON-serializable, a TEXT route returning a dict) becomes a
ProtocolError(500). A handler's own business errors are not told apart
from serialization bugs.

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Tuple, Union
import json
import logging

from .errors import ProtocolError
from .request import JSON_CONTENT_TYPE, TEXT_CONTENT_TYPE
from .router import ResultKind, Route
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Text:
    """A handler result sent verbatim as text/plain."""
    value: str


@dataclass(frozen=True)
class Structured:
    """A handler result serialized to JSON."""
    value: Any


HandlerResult = Union[Text, Structured]


def resolve_result(value: Any, kind: ResultKind = ResultKind.AUTO) -> HandlerResult:
    """
    Tag a handler's return value as Text or Structured.

    Already-tagged values pass through untouched; bare values are tagged
    according to `kind`.

    Raises:
        TypeError: If a TEXT route returned something other than a str.
    """
    if isinstance(value, (Text, Structured)):
        return value

    if kind is ResultKind.JSON:
        return Structured(value)

    if kind is ResultKind.TEXT:
        if not isinstance(value, str):
            raise TypeError(f"text handler returned {type(value).__name__}, expected str")
        return Text(value)

    return Text(value) if isinstance(value, str) else Structured(value)


def render_result(result: HandlerResult) -> Tuple[str, str]:
    """
    Serialize a tagged result into (payload, content_type).

    JSON is written compactly ({"n":3}) and strictly: NaN and Infinity
    raise ValueError instead of producing invalid JSON.
    """
    if isinstance(result, Text):
        return result.value, TEXT_CONTENT_TYPE
    return json.dumps(result.value, separators=(",", ":"), allow_nan=False), JSON_CONTENT_TYPE


def dispatch(route: Route, body: Any) -> Tuple[str, str]:
    """
    Run a route's handler on the decoded request body.

    Args:
        route: The route matched for this request.
        body: Decoded body, or None when the request had none.

    Returns:
        (payload, content_type)

    Raises:
        ProtocolError(500): If the handler fails or its result cannot be
            rendered.
    """
    try:
        result = resolve_result(route.handler(body), route.kind)
        payload, content_type = render_result(result)
    except Exception as e:
        logger.debug(f"Handler for ({route.method}, {route.path}) failed: {e!r}")
        raise ProtocolError(
            f"Internal error when processing data: {e}",
            HTTPStatus.INTERNAL_SERVER_ERROR,
        ) from e

    logger.debug(f"Handled route ({route.method}, {route.path})")
    return payload, content_type
