"""
=============================================================================
STATIQ - Static Content Server
=============================================================================

Answers every request for a directory of static files with exactly one
of: the file, a redirect, a directory listing, the single-page-app
index, a custom not-found page, or an error.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   statiq/                                                            │
    │   ├── config.py          StaticConfig, ServerConfig, ConfigError     │
    │   ├── filesystem.py      FileSystem (local disk / in-memory)         │
    │   ├── handlers/          resolver, cache policy, listing, handler    │
    │   ├── http/              request, response, MIME table, ranges       │
    │   ├── middleware/        access logging                              │
    │   ├── core/              sockets, connections, worker pool           │
    │   └── server.py          StaticServer                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    from statiq import StaticConfig, StaticServer

    StaticServer(StaticConfig(root="./dist", spa_mode=True)).run()

Or embed just the handler:

    from statiq import StaticConfig, StaticFileHandler

    handler = StaticFileHandler(StaticConfig(root="./public"))
    response = handler(request)

=============================================================================
"""

__version__ = "1.0.0"

from .config import (
    ConfigError,
    ErrorPageMissing,
    RootUnavailable,
    ServerConfig,
    StaticConfig,
)
from .filesystem import FileNode, FileSystem, LocalFileSystem, MemoryFileSystem
from .handlers import StaticFileHandler, serve_static
from .http import HTTPRequest, HTTPResponse, HTTPStatus, MimeTypes
from .server import StaticServer

__all__ = [
    "__version__",
    "StaticConfig",
    "ServerConfig",
    "ConfigError",
    "RootUnavailable",
    "ErrorPageMissing",
    "FileNode",
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
    "StaticFileHandler",
    "serve_static",
    "StaticServer",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "MimeTypes",
]
