"""
Unit tests for HTTP request parsing.
"""

import pytest

from statiq.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/docs/guide.html"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parse_request(sample_get_request)

        assert request.get_header("host") == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.headers["accept"] == "text/html"
        assert request.is_keep_alive is True

    def test_query_string_kept_raw(self):
        """Test that the raw query string survives untouched."""
        raw = b"GET /docs?b=2&a=1&x=%2F HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/docs"
        assert request.query_string == "b=2&a=1&x=%2F"

    def test_double_slash_target_is_a_path(self):
        """Test that an origin-form target starting with '//' is not read as a host."""
        raw = b"GET //sub/file.txt?x=1 HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "//sub/file.txt"
        assert request.query_string == "x=1"

    def test_path_is_percent_decoded(self):
        """Test URL-encoded path parsing."""
        raw = b"GET /my%20file.txt HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/my file.txt"
        assert request.query_string == ""

    def test_dot_segments_left_for_resolver(self):
        """Test that '..' is not rejected by the parser."""
        raw = b"GET /../../etc/passwd HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/../../etc/passwd"

    def test_absolute_form_target(self):
        """Test that absolute-form targets keep only path and query."""
        raw = b"GET http://example.com/a/b?x=1 HTTP/1.1\r\nHost: example.com\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/a/b"
        assert request.query_string == "x=1"

    @pytest.mark.parametrize("raw, status", [
        (b"BREW /pot HTTP/1.1\r\nHost: test\r\n\r\n", 405),
        (b"GET\r\nHost: test\r\n\r\n", 400),
        (b"get / HTTP/1.1\r\n\r\n", 400),
        (b"GET / HTTP/2.0\r\nHost: test\r\n\r\n", 505),
        (b"GET / HTTP/1.1\r\nContent-Length: nope\r\n\r\n", 400),
    ])
    def test_rejected(self, raw, status):
        """Test the status carried by each parse error."""
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == status

    def test_parse_incomplete_request(self):
        """Test that a request without the header terminator is rejected."""
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_parse_missing_headers(self):
        """Test parsing request with no headers."""
        raw = b"GET / HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.method == "GET"
        assert request.path == "/"
        assert len(request.headers) == 0

    def test_parse_request_too_large(self):
        """Test that oversized requests are rejected."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    @pytest.mark.parametrize("head, keep_alive", [
        (b"GET / HTTP/1.0\r\n", False),
        (b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n", True),
        (b"GET / HTTP/1.1\r\n", True),
        (b"GET / HTTP/1.1\r\nConnection: close\r\n", False),
    ])
    def test_keep_alive_defaults(self, head, keep_alive):
        """Test per-version connection persistence."""
        assert parse_request(head + b"\r\n").is_keep_alive is keep_alive

    def test_case_insensitive_headers(self):
        """Test that header names are case-insensitive."""
        raw = b"GET / HTTP/1.1\r\nIF-NONE-MATCH: \"1-2\"\r\n\r\n"
        request = parse_request(raw)

        assert request.get_header("If-None-Match") == '"1-2"'
        assert request.get_header("if-none-match") == '"1-2"'

    def test_repeated_headers_are_folded(self):
        """Test that repeated headers are joined with a comma."""
        raw = b'GET / HTTP/1.1\r\nIf-None-Match: "a"\r\nIf-None-Match: "b"\r\n\r\n'
        request = parse_request(raw)

        assert request.get_header("if-none-match") == '"a", "b"'


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"
