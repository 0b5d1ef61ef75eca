"""
HTTP layer: request parsing, response building, MIME table, and the
content-serving primitive (conditional requests and byte ranges).
"""

from .content import make_etag, parse_range, serve_content
from .mime_types import DEFAULT_MIME_TYPES, MimeTypes
from .request import HTTPParseError, HTTPRequest, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
    parse_http_date,
)
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "format_http_date",
    "parse_http_date",
    "HTTPStatus",
    "MimeTypes",
    "DEFAULT_MIME_TYPES",
    "serve_content",
    "make_etag",
    "parse_range",
]
