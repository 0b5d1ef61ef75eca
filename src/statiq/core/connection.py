"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps an accepted socket: buffered reading of one request at a time,
timeouts, and a clean close.

=============================================================================
READING A REQUEST
=============================================================================

TCP delivers bytes in arbitrary chunks, and with keep-alive several
requests can arrive back to back. Bytes are buffered until the header
terminator is seen, then Content-Length more bytes are taken (a GET
normally has none). Anything after that stays in the buffer for the next
request.

    buffer: "GET /a HTTP/1.1\r\n...\r\n\r\nGET /b HTTP/1.1\r\n..."
             └──────── request 1 ────────┘└──── kept ─────...

=============================================================================
TIMEOUTS
=============================================================================

    first request       `timeout` (slow clients get a fair chance)
                        → TimeoutError → caller answers 408
    later requests      `keep_alive_timeout`
                        → idle keep-alive, close silently

=============================================================================
"""

import contextlib
import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Tuple


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The request head grew past max_request_size."""


@dataclass
class Connection:
    """
    One client connection.

    Use as a context manager so the socket is always released:

        with conn:
            data = conn.read_request()
            conn.send_response(response_bytes)
    """

    socket: socket.socket
    address: Tuple[str, int]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request.

        Returns:
            The request bytes, or None when the client closed the
            connection or an idle keep-alive timed out.

        Raises:
            TimeoutError: the first request did not arrive in time.
            RequestTooLarge: the request exceeded max_request_size.
        """
        self.state = ConnectionState.READING
        first = self.requests_handled == 0
        self.socket.settimeout(self.timeout if first else self.keep_alive_timeout)

        try:
            if not self._fill(lambda buf: b"\r\n\r\n" in buf):
                return None

            head_length = self._buffer.index(b"\r\n\r\n") + 4
            total = head_length + self._content_length(self._buffer[:head_length])
            # A short body is passed on as-is; the parser decides.
            self._fill(lambda buf: len(buf) >= total)
        except socket.timeout:
            if first:
                raise TimeoutError("Request read timeout")
            logger.debug(f"[{self.id}] Idle keep-alive expired")
            return None
        finally:
            self.socket.settimeout(self.timeout)

        request, self._buffer = self._buffer[:total], self._buffer[total:]
        self.requests_handled += 1
        return request

    def _fill(self, done: Callable[[bytes], bool]) -> bool:
        """Receive until done(buffer) holds. False if the peer hung up first."""
        while not done(self._buffer):
            try:
                chunk = self.socket.recv(self.buffer_size)
            except (ConnectionResetError, BrokenPipeError):
                chunk = b""
            if not chunk:
                return False
            self._buffer += chunk
            if len(self._buffer) > self.max_request_size:
                raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")
        return True

    @staticmethod
    def _content_length(head: bytes) -> int:
        for line in head.decode("latin-1").split("\r\n")[1:]:
            name, sep, value = line.partition(":")
            if sep and name.strip().lower() == "content-length":
                try:
                    return max(int(value.strip()), 0)
                except ValueError:
                    return 0
        return 0

    def send_response(self, data: bytes) -> bool:
        """sendall() the response. False if the client went away."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False
        return True

    def close(self):
        """Half-close, drain briefly, then release the socket."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED

        with contextlib.suppress(OSError):
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass

        self.socket.close()
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} requests")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info) -> bool:
        self.close()
        return False
