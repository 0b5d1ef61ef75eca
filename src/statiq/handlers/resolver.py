"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a request path onto the filesystem and classifies what is there.

=============================================================================
NORMALIZATION FIRST
=============================================================================

Nothing looks at the path before it is normalized:

    ""                  → "/"
    "docs/guide"        → "/docs/guide"
    "//docs///guide"    → "/docs/guide"
    "/docs/./guide"     → "/docs/guide"
    "/../../etc/passwd" → "/etc/passwd"     (clamped at the root)

So "../" can never climb above the root, and an empty path is simply the
root directory.

=============================================================================
CLASSIFICATION
=============================================================================

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │ stat() outcome       │ Classification                               │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │ regular file         │ FILE                                         │
    │ directory            │ DIRECTORY                                    │
    │ FileNotFoundError    │ MISSING            (normal, not logged)      │
    │ NotADirectoryError   │ MISSING            ("/file.txt/x")           │
    │ NUL byte in path     │ MISSING                                      │
    │ PermissionError      │ PERMISSION_DENIED  (includes symlink escape) │
    │ any other OSError    │ OTHER_ERROR                                  │
    └──────────────────────┴──────────────────────────────────────────────┘

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..filesystem import FileNode, FileSystem, clean_path, join_path


logger = logging.getLogger(__name__)


class Classification(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    MISSING = "missing"
    PERMISSION_DENIED = "permission_denied"
    OTHER_ERROR = "other_error"


@dataclass(frozen=True)
class Resolution:
    """
    Result of resolving one request path.

    Attributes:
        kind: What was found.
        path: The normalized path that was looked up.
        node: Metadata, for FILE and DIRECTORY only.
        error: The OSError behind PERMISSION_DENIED / OTHER_ERROR.
    """

    kind: Classification
    path: str
    node: Optional[FileNode] = None
    error: Optional[OSError] = None


class PathResolver:
    """Resolves request paths against a FileSystem. Stateless."""

    def __init__(self, filesystem: FileSystem):
        self.filesystem = filesystem

    def resolve(self, path: str) -> Resolution:
        cleaned = clean_path(path)

        if "\x00" in cleaned:
            return Resolution(Classification.MISSING, cleaned)

        try:
            node = self.filesystem.stat(cleaned)
        except (FileNotFoundError, NotADirectoryError):
            return Resolution(Classification.MISSING, cleaned)
        except PermissionError as e:
            logger.warning(f"Permission denied resolving {cleaned}")
            return Resolution(Classification.PERMISSION_DENIED, cleaned, error=e)
        except OSError as e:
            logger.error(f"Error resolving {cleaned}", exc_info=True)
            return Resolution(Classification.OTHER_ERROR, cleaned, error=e)
        except ValueError:
            # Names the OS refuses outright
            return Resolution(Classification.MISSING, cleaned)

        kind = Classification.DIRECTORY if node.is_dir else Classification.FILE
        return Resolution(kind, cleaned, node=node)

    def has_index(self, directory: str, name: str) -> bool:
        """True if `name` exists as a regular file inside `directory`."""
        return self.find_index(directory, name) is not None

    def find_index(self, directory: str, name: str) -> Optional[FileNode]:
        try:
            node = self.filesystem.stat(join_path(clean_path(directory), name))
        except OSError as e:
            if not isinstance(e, (FileNotFoundError, NotADirectoryError)):
                logger.debug(f"Index probe failed for {directory}{name}: {e}")
            return None
        return None if node.is_dir else node
