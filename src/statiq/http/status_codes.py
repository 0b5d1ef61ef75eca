"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes a read-only static file server can emit.

=============================================================================
WHICH CODES, AND WHO EMITS THEM
=============================================================================

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ File, directory listing, SPA fallback, custom error page │
    │  206   │ Single byte range of a file                              │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  301   │ Directory canonicalization (trailing slash, index file)  │
    │  304   │ Conditional request matched (ETag / Last-Modified)       │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Malformed request line (host layer)                      │
    │  403   │ Permission denied / path escapes the root                │
    │  404   │ Nothing to serve and no fallback configured              │
    │  405   │ Anything but GET and HEAD                                 │
    │  408   │ Client never finished sending the request (host layer)   │
    │  413   │ Request larger than max_request_size (host layer)        │
    │  416   │ Range outside the file                                   │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ stat/read failure                                         │
    │  503   │ Worker queue full (host layer)                           │
    │  505   │ Unknown HTTP version (host layer)                        │
    └────────┴───────────────────────────────────────────────────────────┘

Note that a missing file is NOT always a 404 here: SPA mode and the
custom error page both answer a miss with 200.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.MOVED_PERMANENTLY == 301
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200                        # Body is the requested representation
    PARTIAL_CONTENT = 206           # Body is one byte range

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301         # Canonical URL lives elsewhere
    FOUND = 302                     # Temporary redirect
    NOT_MODIFIED = 304              # Client cache is still valid

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    RANGE_NOT_SATISFIABLE = 416

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line ("HTTP/1.1 200 OK")."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
