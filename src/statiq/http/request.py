"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from a connection into an HTTPRequest.

=============================================================================
WHAT A STATIC SERVER NEEDS FROM A REQUEST
=============================================================================

    GET /docs/guide?lang=en&v=2 HTTP/1.1\r\n
    ─┬─ ─────┬──── ─────┬────── ────┬───
     │       │          │           └── version → keep-alive default
     │       │          └── RAW query string, kept byte-for-byte
     │       └── path, percent-decoded ("/my%20file" → "/my file")
     └── method (only GET and HEAD are served)

    Host: example.com\r\n
    If-None-Match: "1718445600-2048"\r\n     ─┐
    If-Modified-Since: Sat, 15 Jun ...\r\n    ├─ conditional / range headers
    Range: bytes=0-1023\r\n                  ─┘
    \r\n

The query string is kept RAW because a directory redirect must append it
to the Location header verbatim. Re-encoding parsed parameters would
reorder or re-escape them.

Path normalization ("..", "//", missing leading slash) is NOT done here;
PathResolver owns it so the handler is safe no matter which host feeds
it requests.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict
from urllib.parse import unquote, urlsplit


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code the host should answer with:
    400 (malformed), 405 (unknown method), 413 (too large),
    505 (unsupported version).
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase (RFC 7230 makes them
    case-insensitive), so lookups never need .lower() at the call site.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_string: str = ""
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection open unless told "close";
        HTTP/1.0 closes it unless told "keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP/1.x request bytes.

    The parser is stateless apart from its size limit, so one instance is
    shared by every worker thread.
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Raises:
            HTTPParseError: if the request is malformed or too large.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes", status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        lines = header_section.split("\r\n")

        method, path, query_string, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")

        body = data[header_end + 4:header_end + 4 + content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_string=query_string,
            body=body,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}", status_code=505
            )

        if target.startswith("/"):
            # Origin-form: "//a/b" is a path here, not an authority
            raw_path, _, query = target.partition("?")
        else:
            # Absolute-form ("GET http://host/path") keeps only path and query
            parts = urlsplit(target)
            raw_path, query = parts.path, parts.query

        return method, unquote(raw_path, errors="replace"), query, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a lowercase-keyed dict.

        Repeated headers are folded into one comma-separated value;
        obsolete line continuations are appended to the previous header.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed lines

            name = match.group(1).strip().lower()
            value = match.group(2).strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024,
) -> HTTPRequest:
    """One-shot helper around RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
