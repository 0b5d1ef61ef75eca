"""
=============================================================================
FILESYSTEM CAPABILITY
=============================================================================

Everything the handler knows about disk goes through three operations:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          FileSystem                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │   stat(path)            → FileNode         (metadata, no content)   │
    │   open(path)            → binary file      (content, seekable)      │
    │   read_directory(path)  → list[FileNode]   (unsorted entries)       │
    └─────────────────────────────────────────────────────────────────────┘

Paths are URL-style and root-relative: "/", "/css/site.css". A
FileSystem is rooted; it can never hand out anything above its root.

Errors are the builtin OSError family so callers can classify them with
plain except clauses:

    FileNotFoundError / NotADirectoryError  → nothing there (not an error)
    PermissionError                         → 403
    any other OSError                       → 500

=============================================================================
TWO IMPLEMENTATIONS
=============================================================================

LocalFileSystem    Real disk. Resolves symlinks and refuses (PermissionError)
                   any path whose real location is outside the root.

MemoryFileSystem   In-memory tree for tests. Can inject permission and I/O
                   failures on chosen paths without touching disk.

=============================================================================
"""

import errno
import io
import logging
import os
import posixpath
import stat as stat_module
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Dict, List, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileNode:
    """
    Metadata for one file or directory, read fresh for every request.

    Attributes:
        path: Root-relative URL path ("/css/site.css", "/" for the root).
        name: Last path component ("" for the root).
        is_dir: True for directories.
        size: Size in bytes (0 for directories in the memory filesystem).
        mtime: Modification time, POSIX seconds.
        mode: Permission bits (stat.S_IMODE of st_mode).
    """

    path: str
    name: str
    is_dir: bool
    size: int
    mtime: float
    mode: int = 0o644

    @property
    def extension(self) -> str:
        """
        Text from the last dot of the name, dot included.

        "app.min.js" → ".js", ".htaccess" → ".htaccess", "Makefile" → "".
        """
        dot = self.name.rfind(".")
        return self.name[dot:] if dot != -1 else ""

    @property
    def modified(self) -> datetime:
        """Modification time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.mtime, tz=timezone.utc)


def clean_path(path: str) -> str:
    """
    Normalize a URL path for filesystem lookup.

    Always returns an absolute path with no ".", ".." or empty segments.
    ".." at the top is clamped at the root, so the result can never
    point above it:

        ""              → "/"
        "docs"          → "/docs"
        "/a//b/./c/"    → "/a/b/c"
        "/../../etc"    → "/etc"
    """
    segments: List[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    return "/" + "/".join(segments)


def join_path(directory: str, name: str) -> str:
    """Join a cleaned directory path and an entry name."""
    return directory.rstrip("/") + "/" + name


class FileSystem(ABC):
    """Read-only, rooted filesystem capability."""

    @abstractmethod
    def stat(self, path: str) -> FileNode:
        """Metadata for `path`. Follows symlinks (within the root)."""

    @abstractmethod
    def open(self, path: str) -> BinaryIO:
        """Open `path` for binary reading. Caller closes the handle."""

    @abstractmethod
    def read_directory(self, path: str) -> List[FileNode]:
        """Entries of the directory at `path`, in no particular order."""


class LocalFileSystem(FileSystem):
    """
    FileSystem backed by a real directory.

    =========================================================================
    SYMLINK CONTAINMENT
    =========================================================================

    A symlink inside the root may point anywhere:

        /srv/site/passwd  →  /etc/passwd

    Every lookup therefore resolves the full path with os.path.realpath()
    and checks that the REAL location is still under the real root:

        realpath("/srv/site/passwd") = "/etc/passwd"
        "/etc/passwd" not under "/srv/site"  →  PermissionError

    Links that stay inside the root work normally.

    =========================================================================
    """

    def __init__(self, root: str):
        self.root = os.path.realpath(root)

    def _real_path(self, path: str) -> str:
        relative = clean_path(path).lstrip("/")
        full = os.path.realpath(os.path.join(self.root, relative))

        if full != self.root and not full.startswith(self.root.rstrip(os.sep) + os.sep):
            logger.warning(f"Refusing path outside root: {path}")
            raise PermissionError(errno.EACCES, "Path resolves outside the root", path)
        return full

    def stat(self, path: str) -> FileNode:
        cleaned = clean_path(path)
        info = os.stat(self._real_path(cleaned))
        return FileNode(
            path=cleaned,
            name=posixpath.basename(cleaned),
            is_dir=stat_module.S_ISDIR(info.st_mode),
            size=info.st_size,
            mtime=info.st_mtime,
            mode=stat_module.S_IMODE(info.st_mode),
        )

    def open(self, path: str) -> BinaryIO:
        return open(self._real_path(path), "rb")

    def read_directory(self, path: str) -> List[FileNode]:
        cleaned = clean_path(path)
        nodes = []

        with os.scandir(self._real_path(cleaned)) as entries:
            for entry in entries:
                child = join_path(cleaned, entry.name)
                try:
                    nodes.append(self.stat(child))
                except (FileNotFoundError, PermissionError) as e:
                    # Broken symlink, or a link that leaves the root
                    logger.debug(f"Skipping directory entry {child}: {e}")
        return nodes


class MemoryFileSystem(FileSystem):
    """
    In-memory FileSystem for tests.

    Usage:
        fs = MemoryFileSystem()
        fs.add_file("/index.html", b"hi")
        fs.add_file("/css/site.css", b"body {}", mtime=1718445600)
        fs.deny("/private")                      # PermissionError
        fs.fail("/broken.txt", OSError(errno.EIO, "I/O error"))

    Parent directories are created implicitly.
    """

    def __init__(self, files: Optional[Dict[str, bytes]] = None, mtime: Optional[float] = None):
        self._default_mtime = time.time() if mtime is None else mtime
        self._files: Dict[str, bytes] = {}
        self._meta: Dict[str, tuple[float, int]] = {}
        self._dirs: Dict[str, float] = {"/": self._default_mtime}
        self._denied: set[str] = set()
        self._failures: Dict[str, OSError] = {}

        for path, data in (files or {}).items():
            self.add_file(path, data)

    def add_file(self, path: str, data: bytes, mtime: Optional[float] = None, mode: int = 0o644) -> "MemoryFileSystem":
        path = clean_path(path)
        self._add_parents(path)
        self._files[path] = data
        self._meta[path] = (self._default_mtime if mtime is None else mtime, mode)
        return self

    def add_directory(self, path: str, mtime: Optional[float] = None) -> "MemoryFileSystem":
        path = clean_path(path)
        self._add_parents(path)
        self._dirs[path] = self._default_mtime if mtime is None else mtime
        return self

    def deny(self, path: str) -> "MemoryFileSystem":
        """Make every operation on `path` raise PermissionError."""
        self._denied.add(clean_path(path))
        return self

    def fail(self, path: str, error: OSError) -> "MemoryFileSystem":
        """Make every operation on `path` raise `error`."""
        self._failures[clean_path(path)] = error
        return self

    def _add_parents(self, path: str) -> None:
        parent = posixpath.dirname(path)
        while parent not in self._dirs:
            self._dirs[parent] = self._default_mtime
            parent = posixpath.dirname(parent)

    def _check(self, path: str) -> str:
        path = clean_path(path)
        if path in self._denied:
            raise PermissionError(errno.EACCES, "Permission denied", path)
        if path in self._failures:
            raise self._failures[path]

        parent = posixpath.dirname(path)
        if path != "/" and parent in self._files:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
        if path not in self._files and path not in self._dirs:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return path

    def stat(self, path: str) -> FileNode:
        path = self._check(path)
        name = posixpath.basename(path)

        if path in self._dirs:
            return FileNode(path=path, name=name, is_dir=True, size=0,
                            mtime=self._dirs[path], mode=0o755)

        mtime, mode = self._meta[path]
        return FileNode(path=path, name=name, is_dir=False,
                        size=len(self._files[path]), mtime=mtime, mode=mode)

    def open(self, path: str) -> BinaryIO:
        path = self._check(path)
        if path in self._dirs:
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        return io.BytesIO(self._files[path])

    def read_directory(self, path: str) -> List[FileNode]:
        path = self._check(path)
        if path not in self._dirs:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)

        children = [
            child for child in list(self._dirs) + list(self._files)
            if child != "/" and posixpath.dirname(child) == path
        ]
        nodes = []
        for child in children:
            try:
                nodes.append(self.stat(child))
            except (FileNotFoundError, PermissionError):
                continue
        return nodes
