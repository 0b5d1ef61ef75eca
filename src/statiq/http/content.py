"""
=============================================================================
CONTENT SERVING
=============================================================================

serve_content() turns an already-resolved file into a response, taking
care of the request headers that decide HOW MUCH of it to send.

=============================================================================
DECISION ORDER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   If-None-Match present?                                             │
    │     ├─ matches ETag (or "*")            → 304 Not Modified           │
    │     └─ no match                         → skip If-Modified-Since     │
    │   else If-Modified-Since >= mtime?      → 304 Not Modified           │
    │                                                                      │
    │   Range: bytes=...  (and If-Range, if any, still matches)            │
    │     ├─ one satisfiable range            → 206 Partial Content        │
    │     ├─ range starts past end of file    → 416 Range Not Satisfiable  │
    │     └─ several ranges / bad syntax      → ignored, full body         │
    │                                                                      │
    │   otherwise                             → 200, full body             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

HTTP dates have one-second resolution, so mtimes are truncated to whole
seconds before comparing against If-Modified-Since.

Only the bytes that are sent are read: the file is opened, seeked to the
range start and read for the range length. HEAD requests get every header
and no body.

=============================================================================
"""

import re
from typing import BinaryIO, Callable, Dict, Optional, Tuple

from ..filesystem import FileNode
from .request import HTTPRequest
from .response import HTTPResponse, ResponseBuilder, format_http_date, parse_http_date
from .status_codes import HTTPStatus


_RANGE_PATTERN = re.compile(r"^bytes=(\d*)-(\d*)$")


def make_etag(node: FileNode) -> str:
    """Weak-enough fingerprint: whole-second mtime plus size."""
    return f'"{int(node.mtime)}-{node.size}"'


def serve_content(
    request: HTTPRequest,
    opener: Callable[[], BinaryIO],
    node: FileNode,
    content_type: str,
    headers: Optional[Dict[str, str]] = None,
    status: HTTPStatus = HTTPStatus.OK,
) -> HTTPResponse:
    """
    Build the response for one file.

    Args:
        request: The incoming request (method + conditional/range headers).
        opener: Zero-argument callable returning an open binary file.
                Called at most once, and not at all for 304/416.
        node: Metadata of the file being served.
        content_type: Content-Type header value.
        headers: Extra headers (Cache-Control, Last-Modified...).
        status: Status for a full response. Anything but 200 disables
                conditional and range handling.

    Raises:
        OSError: if opening or reading the file fails. The caller decides
                 which status that becomes.
    """
    etag = make_etag(node)
    last_modified = format_http_date(node.modified)

    base_headers = {
        "Last-Modified": last_modified,
        **(headers or {}),
        "ETag": etag,
        "Accept-Ranges": "bytes",
    }

    if status == HTTPStatus.OK and _not_modified(request, etag, node):
        return (ResponseBuilder()
            .status(HTTPStatus.NOT_MODIFIED)
            .headers(base_headers)
            .build())

    size = node.size
    byte_range = None
    if status == HTTPStatus.OK and _range_applies(request, etag, node):
        try:
            byte_range = parse_range(request.get_header("range"), size)
        except RangeNotSatisfiable:
            return (ResponseBuilder()
                .status(HTTPStatus.RANGE_NOT_SATISFIABLE)
                .headers(base_headers)
                .header("Content-Range", f"bytes */{size}")
                .build())

    builder = ResponseBuilder().headers(base_headers).content_type(content_type)

    if byte_range is None:
        start, length = 0, size
        builder.status(status)
    else:
        start, end = byte_range
        length = end - start + 1
        builder.status(HTTPStatus.PARTIAL_CONTENT)
        builder.header("Content-Range", f"bytes {start}-{end}/{size}")

    builder.header("Content-Length", str(length))

    if request.method == "HEAD":
        return builder.build()

    with opener() as fh:
        if start:
            fh.seek(start)
        data = fh.read(length)

    return builder.body(data).build()


class RangeNotSatisfiable(ValueError):
    """The requested range lies entirely outside the file."""


def parse_range(header: str, size: int) -> Optional[Tuple[int, int]]:
    """
    Parse a Range header into an inclusive (start, end) pair.

        bytes=0-99      → (0, 99)
        bytes=100-      → (100, size - 1)
        bytes=-100      → (size - 100, size - 1)
        bytes=0-9,20-29 → None (multiple ranges: serve the whole file)
        items=0-10      → None (unknown unit)

    Returns None when the header should be ignored.

    Raises:
        RangeNotSatisfiable: for a well-formed range past the end.
    """
    match = _RANGE_PATTERN.match(header.strip().replace(" ", ""))
    if not match:
        return None

    first, last = match.groups()
    if not first and not last:
        return None

    if not first:
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(header)
        return max(size - suffix, 0), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if end < start:
        return None
    if start >= size:
        raise RangeNotSatisfiable(header)
    return start, min(end, size - 1)


def _not_modified(request: HTTPRequest, etag: str, node: FileNode) -> bool:
    if request.method not in ("GET", "HEAD"):
        return False

    if_none_match = request.get_header("if-none-match")
    if if_none_match:
        candidates = [tag.strip() for tag in if_none_match.split(",")]
        # Weak comparison: W/"x" matches "x"
        return "*" in candidates or any(
            tag.removeprefix("W/") == etag for tag in candidates
        )

    since = parse_http_date(request.get_header("if-modified-since"))
    if since is None:
        return False
    return int(node.mtime) <= since.timestamp()


def _range_applies(request: HTTPRequest, etag: str, node: FileNode) -> bool:
    if request.method not in ("GET", "HEAD") or not request.get_header("range"):
        return False

    if_range = request.get_header("if-range")
    if not if_range:
        return True
    if if_range.startswith('"') or if_range.startswith("W/"):
        return if_range == etag
    since = parse_http_date(if_range)
    return since is not None and int(node.mtime) <= since.timestamp()
