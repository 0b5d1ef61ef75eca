"""
=============================================================================
STATIC SERVER
=============================================================================

Puts the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept──► ThreadPool ──► _process_connection        │
    │                                              │                       │
    │                                  read ──► RequestParser              │
    │                                              │                       │
    │                                   LoggingMiddleware                  │
    │                                              │                       │
    │                                   StaticFileHandler.handle           │
    │                                              │                       │
    │                                  send ◄── HTTPResponse               │
    │                                              │                       │
    │                                  keep-alive? loop : close            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The handler is built in __init__, so a bad root, a missing error page or
an invalid setting fails before any socket is opened.

Failures outside the handler are answered here:

    parse error            its own status (400 / 405 / 413 / 505)
    request too large      413
    first read timed out   408
    worker queue full      503
    handler raised         500

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig, StaticConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .core.connection import ConnectionState
from .handlers import StaticFileHandler
from .http import HTTPParseError, HTTPStatus, RequestParser, error_response
from .http.response import internal_error
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class StaticServer:
    """
    HTTP/1.1 server for one static root.

    Usage:
        server = StaticServer(
            StaticConfig(root="./public", spa_mode=True),
            ServerConfig(port=8080),
        )
        server.run()   # blocks until SIGINT / SIGTERM

    Tests can run it on a background thread with port=0 and read the
    real port from server.address after wait_until_ready().
    """

    def __init__(
        self,
        static_config: StaticConfig,
        config: Optional[ServerConfig] = None,
        handler: Optional[StaticFileHandler] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = handler or StaticFileHandler(static_config)

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            workers=self.config.workers,
            queue_size=self.config.queue_size,
        )
        self._app = None
        self._running = False

    def use(self, middleware: Middleware) -> "StaticServer":
        """Add middleware inside the access logger."""
        self._middleware.add(middleware)
        return self

    @property
    def address(self):
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def run(self):
        """Serve until shutdown() or a signal. Blocks."""
        self._app = self._middleware.wrap(self.handler.handle)
        self._running = True
        self._thread_pool.start()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Stop accepting connections. run() returns once workers drain."""
        self._socket_server.shutdown()

    def _shutdown(self):
        self._running = False
        self._thread_pool.shutdown(timeout=self.config.timeout or 30.0)
        logger.info("Server stopped")

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTIONS
    # ─────────────────────────────────────────────────────────────────────

    def _handle_connection(self, conn: Connection):
        if not self._thread_pool.submit(self._process_connection, conn):
            logger.warning(
                f"[{conn.id}] Worker queue full, rejecting {conn.client_ip}: {self._thread_pool.stats}"
            )
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs on a worker)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    return
                except RequestTooLarge:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    return

                if raw_request is None:
                    return

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    self._send_error(conn, HTTPStatus(e.status_code))
                    return

                conn.state = ConnectionState.PROCESSING
                try:
                    response = self._app(request)
                except Exception:
                    logger.exception(f"[{conn.id}] Handler error for {request.path!r}")
                    response = internal_error()

                keep_alive = request.is_keep_alive and self._running
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                if not conn.send_response(response.to_bytes(self.config.server_name)):
                    return
                if not keep_alive:
                    return
                conn.state = ConnectionState.KEEP_ALIVE

    def _send_error(self, conn: Connection, status: HTTPStatus):
        response = error_response(status)
        conn.send_response(response.to_bytes(self.config.server_name))


def setup_logging(level: str = "INFO"):
    """Configure the root logger once, for the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
