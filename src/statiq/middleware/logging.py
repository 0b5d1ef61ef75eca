"""
=============================================================================
ACCESS LOGGING
=============================================================================

One line per request on the "statiq.access" logger, kept separate from
the application loggers so it can be routed on its own:

    logging.getLogger("statiq.access").addHandler(file_handler)

Two formats:

    text   127.0.0.1 - - [15/Jun/2024:10:00:00 +0000] "GET /app.js" 200 5120 0.84ms "curl/8.0"
    json   {"request_id": "1f3a9c0e", "method": "GET", "path": "/app.js", ...}

Every response gets an X-Request-ID header matching the log entry, so a
client report can be traced back to the exact line.

The logged size is the Content-Length header (HEAD and 304 responses have
no body but still report what a GET would have sent).

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import Middleware, NextHandler


logger = logging.getLogger("statiq.access")


@dataclass
class RequestLog:
    """A single access-log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms "{self.user_agent}"'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging with request IDs and timing.

    Add it FIRST so it times the whole chain and sees every request:

        pipeline.add(LoggingMiddleware(log_format="json"))

    A client-supplied X-Request-ID is reused; otherwise an 8-character
    ID is generated.
    """

    FORMATS = ("text", "json")

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in self.FORMATS:
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = frozenset(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = request.get_header("x-request-id") or uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.path} raised "
                f"{type(e).__name__}: {e} after {elapsed:.2f}ms"
            )
            raise

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path not in self.skip_paths:
            entry = self._entry(request, response, request_id, started)
            message = json.dumps(entry.to_dict()) if self.log_format == "json" else entry.to_text()
            logger.log(self.log_level, message)

        return response

    @staticmethod
    def _entry(
        request: HTTPRequest, response: HTTPResponse, request_id: str, started: float
    ) -> RequestLog:
        try:
            size = int(response.headers.get("Content-Length", len(response.body)))
        except ValueError:
            size = len(response.body)

        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=request.query_string,
            client_ip=request.client_address[0] if request.client_address else "",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=size,
            duration_ms=(time.perf_counter() - started) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )
