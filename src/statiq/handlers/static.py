"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a request path into exactly one response: a file, a redirect, a
directory listing, the SPA index, the custom 404 page, or an error.

=============================================================================
DECIDE, THEN RENDER
=============================================================================

Handling is split in two steps:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   decide(path, query)           render(decision, request)           │
    │   ───────────────────           ─────────────────────────           │
    │   resolve + classify     ──►    ServeFile      → file bytes          │
    │   probe index files             Redirect       → 301 + Location      │
    │   apply fallbacks               ServeListing   → HTML page           │
    │                                 ServeErrorPage → 404 page, 200       │
    │   returns ONE decision          NotFound       → 404                 │
    │                                 Forbidden      → 403                 │
    │                                 InternalError  → 500                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

decide() never builds HTTP; render() never makes routing choices.

=============================================================================
DECISION RULES (in priority order)
=============================================================================

    FILE
        → ServeFile (cache headers, content type, conditional + range)

    DIRECTORY
        path has no trailing "/"     → 301 to cleaned path + "/" (+ "?" + query)
        an index file exists         → 301 to dir + index (+ "?" + query)
        listing disabled             → same as MISSING
        otherwise                    → ServeListing

    MISSING
        spa_mode                     → ServeFile(spa index), 200
        error_page_404 set           → ServeErrorPage, 200
        otherwise                    → NotFound (404)

    PERMISSION_DENIED                → Forbidden (403)
    OTHER_ERROR                      → InternalError (500)

SPA mode wins when both spa_mode and error_page_404 are set.

=============================================================================
SECURITY
=============================================================================

    "/../../etc/passwd"   normalized to "/etc/passwd", under the root
    symlink to /etc       PermissionError from the filesystem → 403
    403 / 500 bodies      fixed text, no paths, no exception messages

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union
from urllib.parse import quote

from ..config import ErrorPageMissing, StaticConfig
from ..filesystem import FileNode, FileSystem, LocalFileSystem
from ..http.content import serve_content
from ..http.mime_types import MimeTypes
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    forbidden,
    internal_error,
    method_not_allowed,
    not_found,
)
from ..http.status_codes import HTTPStatus
from .cache import CacheHeaderPolicy
from .listing import DirectoryListingRenderer
from .resolver import Classification, PathResolver


logger = logging.getLogger(__name__)


ALLOWED_METHODS = ["GET", "HEAD"]

# Characters left as-is when re-encoding a path for Location
_LOCATION_SAFE = "/!$&'()*+,;=:@"


# =============================================================================
# RESPONSE DECISIONS
# =============================================================================


@dataclass(frozen=True)
class ServeFile:
    node: FileNode


@dataclass(frozen=True)
class Redirect:
    location: str


@dataclass(frozen=True)
class ServeListing:
    path: str
    entries: Tuple[FileNode, ...]


@dataclass(frozen=True)
class ServeErrorPage:
    node: FileNode
    status: HTTPStatus = HTTPStatus.OK


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Forbidden:
    pass


@dataclass(frozen=True)
class InternalError:
    pass


ResponseDecision = Union[
    ServeFile, Redirect, ServeListing, ServeErrorPage, NotFound, Forbidden, InternalError
]


class StaticFileHandler:
    """
    Serves one configured root.

    =========================================================================
    CONSTRUCTION
    =========================================================================

        handler = StaticFileHandler(StaticConfig(root="./public", spa_mode=True))

    Construction fails (and no handler exists) when:

        ConfigError        a setting has the wrong shape
        RootUnavailable    root is missing (and create_root is off)
        ErrorPageMissing   error_page_404 is not a file under root

    Pass `filesystem` to serve from something other than the local disk
    (MemoryFileSystem in tests). The root check is then skipped; the
    filesystem is already rooted.

    =========================================================================
    THREAD SAFETY
    =========================================================================

    Nothing is mutated after __init__. One handler serves every worker
    thread, and every request re-reads the filesystem.

    =========================================================================
    """

    def __init__(
        self,
        config: StaticConfig,
        filesystem: Optional[FileSystem] = None,
        mime_types: Optional[MimeTypes] = None,
    ):
        config.validate()
        if filesystem is None:
            config = config.resolved()
            filesystem = LocalFileSystem(config.root)

        self.config = config
        self.filesystem = filesystem
        self.mime_types = mime_types or MimeTypes()
        self.resolver = PathResolver(filesystem)
        self.cache_policy = CacheHeaderPolicy(config.cache_control)
        self.listing_renderer = DirectoryListingRenderer()

        if config.error_page_404 is not None:
            page = self.resolver.resolve(config.error_page_404)
            if page.kind is not Classification.FILE:
                raise ErrorPageMissing(
                    f"Error page {config.error_page_404!r} not found under {config.root}"
                )

        if config.spa_mode:
            spa = self.resolver.resolve(config.spa_index_file)
            if spa.kind is not Classification.FILE:
                logger.warning(
                    f"SPA index {config.spa_index_file!r} not found; "
                    f"fallback requests will fail until it exists"
                )

        logger.info(f"Serving static files from {config.root}")

    # ─────────────────────────────────────────────────────────────────────
    # ENTRY POINT
    # ─────────────────────────────────────────────────────────────────────

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Answer one request. Never raises.

        HEAD gets the same status and headers as GET, without a body.
        """
        if request.method not in ALLOWED_METHODS:
            return method_not_allowed(ALLOWED_METHODS)

        try:
            decision = self.decide(request.path, request.query_string)
            response = self.render(decision, request)
        except Exception:
            logger.exception(f"Unhandled error serving {request.path!r}")
            response = internal_error()

        if request.method == "HEAD" and response.body:
            response.headers["Content-Length"] = str(len(response.body))
            response.body = b""
        return response

    __call__ = handle

    # ─────────────────────────────────────────────────────────────────────
    # DECIDE
    # ─────────────────────────────────────────────────────────────────────

    def decide(self, path: str, query: str = "") -> ResponseDecision:
        """Pick the response for a request path (and its raw query string)."""
        if not path.startswith("/"):
            path = "/" + path

        resolution = self.resolver.resolve(path)
        kind = resolution.kind

        if kind is Classification.FILE:
            return ServeFile(resolution.node)

        if kind is Classification.DIRECTORY:
            decision = self._directory(path, resolution.path, query)
            if decision is not None:
                return decision
            kind = Classification.MISSING

        if kind is Classification.MISSING:
            return self._missing(resolution.path)

        if kind is Classification.PERMISSION_DENIED:
            return Forbidden()

        return InternalError()

    def _directory(self, request_path: str, directory: str, query: str) -> Optional[ResponseDecision]:
        """Redirect or listing for a directory; None when it counts as missing."""
        # Locations are built from the cleaned path, never the raw request path
        base = directory.rstrip("/") + "/"

        if not request_path.endswith("/"):
            logger.debug(f"Redirecting {request_path} to {base}")
            return Redirect(self._location(base, query))

        for name in self.config.index_files:
            if self.resolver.has_index(directory, name):
                logger.debug(f"Redirecting {request_path} to index {name}")
                return Redirect(self._location(base + name, query))

        if not self.config.directory_listing:
            return None

        try:
            entries = self.filesystem.read_directory(directory)
        except OSError:
            logger.error(f"Cannot list directory {directory}", exc_info=True)
            return InternalError()
        return ServeListing(base, tuple(entries))

    def _missing(self, path: str) -> ResponseDecision:
        if self.config.spa_mode:
            logger.debug(f"SPA fallback for {path}")
            return self._fallback(self.config.spa_index_file, ServeFile)

        if self.config.error_page_404 is not None:
            logger.debug(f"Custom error page for {path}")
            return self._fallback(self.config.error_page_404, ServeErrorPage)

        return NotFound()

    def _fallback(self, page: str, decision) -> ResponseDecision:
        """Stat a configured fallback page at request time."""
        resolution = self.resolver.resolve(page)

        if resolution.kind is Classification.FILE:
            return decision(resolution.node)
        if resolution.kind is Classification.PERMISSION_DENIED:
            return Forbidden()

        logger.error(f"Fallback page {page!r} is unavailable ({resolution.kind.value})")
        return InternalError()

    @staticmethod
    def _location(path: str, query: str) -> str:
        location = quote(path, safe=_LOCATION_SAFE)
        if query:
            location += "?" + query
        return location

    # ─────────────────────────────────────────────────────────────────────
    # RENDER
    # ─────────────────────────────────────────────────────────────────────

    def render(self, decision: ResponseDecision, request: HTTPRequest) -> HTTPResponse:
        """Build the HTTP response for a decision."""
        if isinstance(decision, ServeFile):
            return self._serve_file(decision.node, request, HTTPStatus.OK)

        if isinstance(decision, ServeErrorPage):
            return self._serve_file(decision.node, request, decision.status)

        if isinstance(decision, Redirect):
            return (ResponseBuilder()
                .redirect(decision.location, permanent=True)
                .build())

        if isinstance(decision, ServeListing):
            page = self.listing_renderer.render(decision.path, decision.entries)
            return ResponseBuilder().html(page).build()

        if isinstance(decision, NotFound):
            return not_found()

        if isinstance(decision, Forbidden):
            return forbidden()

        return internal_error()

    def _serve_file(self, node: FileNode, request: HTTPRequest, status: HTTPStatus) -> HTTPResponse:
        try:
            return serve_content(
                request,
                lambda: self.filesystem.open(node.path),
                node,
                self.mime_types.content_type(node.name),
                headers=self.cache_policy.headers_for(node),
                status=status,
            )
        except PermissionError:
            logger.warning(f"Permission denied reading {node.path}")
            return forbidden()
        except OSError:
            logger.error(f"Error reading {node.path}", exc_info=True)
            return internal_error()


def serve_static(root: str, **kwargs) -> StaticFileHandler:
    """
    Shortcut for the common case.

        handler = serve_static("./public", spa_mode=True)
    """
    return StaticFileHandler(StaticConfig(root=root, **kwargs))
