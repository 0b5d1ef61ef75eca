"""
=============================================================================
STATIC CONTENT HANDLERS
=============================================================================

    StaticFileHandler          request → decision → response
      ├── PathResolver         path → FILE / DIRECTORY / MISSING / ...
      ├── CacheHeaderPolicy    extension → Cache-Control
      └── DirectoryListingRenderer

A handler is a plain callable, HTTPRequest → HTTPResponse, so it can be
wrapped by the middleware pipeline or called directly in tests:

    handler = StaticFileHandler(StaticConfig(root="./public"))
    response = handler(request)

=============================================================================
"""

from .cache import CacheHeaderPolicy
from .listing import DirectoryListingRenderer, render_listing, sort_entries
from .resolver import Classification, PathResolver, Resolution
from .static import (
    Forbidden,
    InternalError,
    NotFound,
    Redirect,
    ResponseDecision,
    ServeErrorPage,
    ServeFile,
    ServeListing,
    StaticFileHandler,
    serve_static,
)

__all__ = [
    "StaticFileHandler",
    "serve_static",
    "ResponseDecision",
    "ServeFile",
    "Redirect",
    "ServeListing",
    "ServeErrorPage",
    "NotFound",
    "Forbidden",
    "InternalError",
    "PathResolver",
    "Resolution",
    "Classification",
    "CacheHeaderPolicy",
    "DirectoryListingRenderer",
    "render_listing",
    "sort_entries",
]
