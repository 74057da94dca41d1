"""
Unit tests for HTTP response building.
"""

import pytest

from minihttp.http.response import HTTPResponse, build_response, write_response
from minihttp.http.status_codes import HTTPStatus, STATUS_TEXT


class RecordingStream:
    """Collects whatever is written to it."""

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.sent = []

    def send_response(self, data: bytes) -> bool:
        self.sent.append(data)
        return self.accept


class TestHTTPStatus:
    """Tests for the status table."""

    @pytest.mark.parametrize("code,phrase", [
        (200, "OK"),
        (400, "Bad Request"),
        (404, "Not Found"),
        (405, "Method Not Allowed"),
        (500, "Internal Server Error"),
    ])
    def test_phrases(self, code: int, phrase: str):
        assert HTTPStatus(code).phrase == phrase
        assert STATUS_TEXT[code] == phrase

    def test_table_is_complete(self):
        assert set(STATUS_TEXT) == set(HTTPStatus)

    def test_is_error(self):
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error

    def test_unknown_code(self):
        with pytest.raises(ValueError):
            HTTPStatus(418)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=404)
        assert response.status_line == "HTTP/1.1 404 Not Found"
        assert response.status is HTTPStatus.NOT_FOUND

    def test_body_has_trailing_newline(self):
        assert HTTPResponse(message="hi").body == b"hi\n"
        assert HTTPResponse(message="").body == b"\n"

    def test_unknown_status_rejected(self):
        """Test that codes outside the table fail at construction."""
        with pytest.raises(ValueError):
            HTTPResponse(status=418)


class TestBuildResponse:
    """Tests for build_response()."""

    def test_text_response_bytes(self):
        """Test the exact wire format of a text response."""
        assert build_response(200, "hi") == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 3\r\n"
            b"\r\n"
            b"hi\n"
        )

    def test_json_response_bytes(self):
        data = build_response(200, '{"n": 3}', "application/json")

        assert data == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 9\r\n"
            b"\r\n"
            b'{"n": 3}\n'
        )

    def test_error_response_bytes(self):
        data = build_response(404, "Path/method not found: (GET, /missing)")

        assert data.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert data.endswith(b"\r\n\r\nPath/method not found: (GET, /missing)\n")

    def test_content_length_counts_utf8_bytes(self):
        """Test that Content-Length is the encoded length, not len(str)."""
        data = build_response(200, "héllo")

        assert b"Content-Length: 7\r\n" in data
        assert data.endswith("héllo\n".encode("utf-8"))

    def test_empty_message(self):
        data = build_response(200, "")

        assert b"Content-Length: 1\r\n" in data
        assert data.endswith(b"\r\n\r\n\n")

    def test_unknown_code(self):
        with pytest.raises(ValueError):
            build_response(201, "created")


class TestWriteResponse:
    """Tests for write_response()."""

    def test_single_write(self):
        """The whole response goes out in one send_response() call."""
        stream = RecordingStream()

        assert write_response(stream, 200, "hi") is True
        assert stream.sent == [build_response(200, "hi")]

    def test_reports_failed_send(self):
        stream = RecordingStream(accept=False)
        assert write_response(stream, 500, "oops") is False

    def test_unknown_code_writes_nothing(self):
        stream = RecordingStream()

        with pytest.raises(ValueError):
            write_response(stream, 302, "elsewhere")

        assert stream.sent == []
