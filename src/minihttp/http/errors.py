"""
Protocol-level errors.

The pipeline distinguishes two kinds of failure:

    ProtocolError      classified, carries the status code to send back
                       (400 bad framing, 404 unknown route, 500 body/handler)
    anything else      unclassified, always reported as 500

Both are caught at the connection boundary and turned into a response.
"""

from .status_codes import HTTPStatus


class ProtocolError(Exception):
    """
    Raised when a request cannot be served.

    Carries the HTTP status code that should be returned to the client
    together with a human-readable message, which becomes the response
    body:

        raise ProtocolError("Invalid path: foo", code=400)

    Args:
        message: Diagnostic text sent as the response payload.
        code: HTTP status code (defaults to 400 Bad Request).
    """

    def __init__(self, message: str, code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.code = int(code)

    def __repr__(self) -> str:
        return f"ProtocolError(code={self.code}, message={self.message!r})"
