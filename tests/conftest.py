"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator

import pytest

from statiq import MemoryFileSystem, ServerConfig, StaticConfig, StaticFileHandler, StaticServer

from helpers import MTIME


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/guide.html?lang=en&v=2 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    """Small in-memory site."""
    fs = MemoryFileSystem(mtime=MTIME)
    fs.add_file("/index.html", b"hi")
    fs.add_file("/404.html", b"<h1>Nothing here</h1>")
    fs.add_file("/css/site.css", b"body { color: red; }")
    fs.add_file("/js/app.min.js", b"console.log(1);")
    fs.add_file("/docs/index.htm", b"docs htm")
    fs.add_file("/docs/guide.html", b"guide")
    fs.add_directory("/sub")
    fs.add_file("/sub/readme.txt", b"read me")
    fs.add_directory("/sub/nested")
    fs.add_file("/data.bin", bytes(range(256)))
    return fs


@pytest.fixture
def make_handler(memory_fs: MemoryFileSystem):
    """Factory: handler over the in-memory site with config overrides."""

    def factory(**config) -> StaticFileHandler:
        return StaticFileHandler(StaticConfig(root="/", **config), filesystem=memory_fs)

    return factory


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """Same layout as memory_fs, on disk."""
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_bytes(b"hi")
    (root / "404.html").write_bytes(b"<h1>Nothing here</h1>")
    (root / "css").mkdir()
    (root / "css" / "site.css").write_bytes(b"body { color: red; }")
    (root / "sub").mkdir()
    (root / "sub" / "readme.txt").write_bytes(b"read me")
    (root / "sub" / "nested").mkdir()
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class RunningServer:
    """StaticServer on a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread = threading.Thread(target=self.server.run, daemon=True)

    def start(self):
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    @property
    def port(self) -> int:
        return self.server.address[1]

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes on a fresh connection, read until close."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            chunks = []
            while True:
                chunk = s.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def stop(self):
        self.server.shutdown()
        self._thread.join(timeout=5.0)


@pytest.fixture
def running_server(site: Path) -> Generator[RunningServer, None, None]:
    """Live server over the on-disk site, on an OS-assigned port."""
    server = StaticServer(
        StaticConfig(root=str(site), error_page_404="404.html"),
        ServerConfig(host="127.0.0.1", port=0, workers=2, timeout=5.0, log_level="WARNING"),
    )
    running = RunningServer(server)
    running.start()

    yield running

    running.stop()
