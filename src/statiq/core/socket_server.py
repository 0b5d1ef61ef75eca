"""
=============================================================================
SOCKET SERVER
=============================================================================

Owns the listening socket: bind, listen, accept, and hand each accepted
connection to a callback.

    start(callback)
        ├── socket() + SO_REUSEADDR + TCP_NODELAY
        ├── bind((host, port)) / listen(backlog)
        ├── install SIGINT / SIGTERM handlers (main thread only)
        └── accept loop ──► Connection(...) ──► callback(conn)

accept() uses a 1 second timeout so the loop notices shutdown() promptly
even when no client connects.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Dict, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    TCP accept loop.

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._listener: Optional[socket.socket] = None
        self._accepting = False
        self._ready = threading.Event()
        self._previous_signal_handlers: Dict[int, object] = {}

    @property
    def is_running(self) -> bool:
        return self._accepting

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port when configured with port 0."""
        if self._listener is not None:
            return self._listener.getsockname()[:2]
        return (self.config.host, self.config.port)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening."""
        return self._ready.wait(timeout)

    def _open_listener(self) -> socket.socket:
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        listener.settimeout(1.0)

        address = (self.config.host, self.config.port)
        try:
            listener.bind(address)
        except OSError as e:
            listener.close()
            logger.error(f"Cannot bind {address[0]}:{address[1]}: {e}")
            raise

        listener.listen(self.config.backlog)
        return listener

    def _install_signal_handlers(self):
        # signal.signal() only works in the main thread
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._previous_signal_handlers[sig] = signal.signal(sig, on_signal)

    def _restore_signal_handlers(self):
        while self._previous_signal_handlers:
            sig, previous = self._previous_signal_handlers.popitem()
            signal.signal(sig, previous)

    def start(self, on_connection: Callable[[Connection], None]):
        """Bind, listen and accept until shutdown(). Blocks."""
        self._listener = self._open_listener()
        self._accepting = True
        self._install_signal_handlers()

        host, port = self.address
        logger.info(f"Listening on http://{host}:{port}")
        self._ready.set()

        try:
            while self._accepting:
                conn = self._accept()
                if conn is not None:
                    on_connection(conn)
        finally:
            self._cleanup()

    def _accept(self) -> Optional[Connection]:
        try:
            client, peer = self._listener.accept()
        except socket.timeout:
            return None
        except OSError as e:
            if self._accepting:
                logger.error(f"Accept failed: {e}")
            self._accepting = False
            return None

        logger.debug(f"Accepted connection from {peer[0]}:{peer[1]}")
        return Connection(
            socket=client,
            address=peer,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            max_request_size=self.config.max_request_size,
        )

    def shutdown(self):
        """Stop the accept loop. Safe to call from any thread, more than once."""
        self._accepting = False

    def _cleanup(self):
        self._restore_signal_handlers()
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        self._ready.clear()
        logger.info("Listener closed")
