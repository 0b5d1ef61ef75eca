"""
=============================================================================
MIME TYPE TABLE
=============================================================================

Maps file extensions to Content-Type values.

=============================================================================
AN EXPLICIT TABLE, NOT A REGISTRY
=============================================================================

Python ships the `mimetypes` module, but it is a process-wide registry:
it reads /etc/mime.types (different on every host) and anyone can call
mimetypes.add_type() at any time. The same file could then be served
with different types on two machines, or change type mid-run.

Instead a MimeTypes table is built ONCE and handed to the handler:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   DEFAULT_MIME_TYPES ──┐                                             │
    │                        ├──► MimeTypes(...) ──► StaticFileHandler     │
    │   overrides (optional)─┘     (read-only)        (shared by workers)  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The table is read-only after construction, so worker threads can share
it without locks.

=============================================================================
CHARSET
=============================================================================

Text types get "; charset=utf-8" appended:

    page.html   → text/html; charset=utf-8
    app.js      → text/javascript; charset=utf-8
    logo.png    → image/png
    blob.xyz    → application/octet-stream

=============================================================================
"""

from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Mapping, Optional


DEFAULT_MIME_TYPES: Mapping[str, str] = MappingProxyType({
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".webmanifest": "application/manifest+json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".7z": "application/x-7z-compressed",

    # Build artifacts
    ".wasm": "application/wasm",
    ".map": "application/json",

    # Source code, served as text for viewing
    ".py": "text/x-python",
    ".go": "text/x-go",
    ".rs": "text/x-rust",
    ".c": "text/x-c",
    ".h": "text/x-c",
    ".sh": "text/x-shellscript",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".toml": "text/x-toml",
})

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* and image/* types that are still text on the wire
_TEXT_LIKE = frozenset({
    "application/json",
    "application/manifest+json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
})


class MimeTypes:
    """
    Immutable extension → MIME type lookup.

    Usage:
        mime = MimeTypes(overrides={".md": "text/plain"})
        mime.content_type("README.md")   # 'text/plain; charset=utf-8'
    """

    def __init__(
        self,
        types: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None,
        default: str = DEFAULT_MIME_TYPE,
        charset: str = "utf-8",
    ):
        table = dict(DEFAULT_MIME_TYPES if types is None else types)
        for extension, mime_type in (overrides or {}).items():
            table[_normalize_extension(extension)] = mime_type

        self._types: Mapping[str, str] = MappingProxyType(
            {_normalize_extension(ext): value for ext, value in table.items()}
        )
        self.default = default
        self.charset = charset

    def __contains__(self, extension: str) -> bool:
        return _normalize_extension(extension) in self._types

    def __len__(self) -> int:
        return len(self._types)

    @property
    def types(self) -> Mapping[str, str]:
        """Read-only view of the table."""
        return self._types

    def mime_type(self, name: str) -> str:
        """
        Bare MIME type for a file name or path.

        The extension is matched case-insensitively (.PNG → .png).
        Unknown extensions map to application/octet-stream.
        """
        extension = PurePosixPath(name).suffix.lower()
        return self._types.get(extension, self.default)

    def content_type(self, name: str) -> str:
        """Full Content-Type header value, with charset for text types."""
        mime_type = self.mime_type(name)
        if is_text_type(mime_type):
            return f"{mime_type}; charset={self.charset}"
        return mime_type


def is_text_type(mime_type: str) -> bool:
    """True for text/* and the handful of textual application types."""
    return mime_type.startswith("text/") or mime_type in _TEXT_LIKE


def _normalize_extension(extension: str) -> str:
    extension = extension.lower()
    if not extension.startswith("."):
        extension = "." + extension
    return extension
