"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

=============================================================================
RESPONSES A STATIC SERVER SENDS
=============================================================================

    FILE                              REDIRECT
    ────                              ────────
    HTTP/1.1 200 OK                   HTTP/1.1 301 Moved Permanently
    Content-Type: text/css; ...       Location: /docs/?lang=en
    Cache-Control: max-age=3600       Content-Length: 0
    Last-Modified: Sat, 15 Jun ...
    ETag: "1718445600-2048"           ERROR
    Accept-Ranges: bytes              ─────
    Content-Length: 2048              HTTP/1.1 404 Not Found
                                      Content-Type: text/plain; ...
    body { ... }                      404 Not Found

Error bodies are short fixed strings. They never carry exception text or
filesystem paths: a 403 or 500 must not tell the client where the root
is or what went wrong on disk.

=============================================================================
BUILDER PATTERN
=============================================================================

    response = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .content_type("text/css; charset=utf-8")
        .header("Cache-Control", "max-age=3600")
        .body(data)
        .build())

Each method returns self, build() returns the HTTPResponse.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Content-Length, Date and Server are filled in by to_bytes() when the
    handler did not set them. HEAD responses set Content-Length
    explicitly and carry an empty body.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self, server_name: str = "statiq") -> bytes:
        """Serialize status line, headers and body for socket.sendall()."""
        response_headers = dict(self.headers)

        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        lines.append("")

        # latin-1: header values are ISO-8859-1 on the wire (RFC 7230)
        header_bytes = "\r\n".join(lines).encode("latin-1", errors="replace") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Usage:
        ResponseBuilder().status(HTTPStatus.OK).html(page).build()
        ResponseBuilder().redirect("/docs/", permanent=True).build()
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = "text/plain; charset=utf-8"
        return self

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = "text/html; charset=utf-8"
        return self

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """
        Redirect to `location`.

        301 Moved Permanently (permanent=True): browsers cache it, which is
        what directory canonicalization wants ("/docs" → "/docs/").
        302 Found otherwise.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(status=self._status, headers=self._headers, body=self._body)


# =============================================================================
# HTTP DATES
# =============================================================================
#
# Last-Modified and If-Modified-Since use the IMF-fixdate format:
#
#     Sun, 06 Nov 1994 08:49:37 GMT
#
# Always GMT, never local time, and always English day/month names
# (so strftime, which follows the locale, is not used for formatting).
#
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date.

    Naive datetimes are taken to be UTC; aware ones are converted.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_http_date(value: str) -> Optional[datetime]:
    """
    Parse an HTTP-date header value into an aware UTC datetime.

    Returns None for anything unparseable; a bad If-Modified-Since must
    be ignored, not turned into an error.
    """
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# =============================================================================
# CONVENIENCE RESPONSES
# =============================================================================


def forbidden() -> HTTPResponse:
    """403 with a fixed body. Never says WHY access was denied."""
    return ResponseBuilder().status(HTTPStatus.FORBIDDEN).text("403 Forbidden").build()


def not_found() -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).text("404 Not Found").build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 requires."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .text("405 Method Not Allowed")
        .build())


def internal_error() -> HTTPResponse:
    """500 with a fixed body. The real error goes to the log, not the client."""
    return (ResponseBuilder()
        .status(HTTPStatus.INTERNAL_SERVER_ERROR)
        .text("500 Internal Server Error")
        .build())


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """Plain-text error for the host layer (parse errors, overload)."""
    return (ResponseBuilder()
        .status(status)
        .text(message or f"{int(status)} {status.phrase}")
        .close_connection()
        .build())
