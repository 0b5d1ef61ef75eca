"""
=============================================================================
CACHE HEADER POLICY
=============================================================================

Chooses the Cache-Control value for a served file.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   cache_control = {".css": "max-age=3600", "*": "no-cache"}         │
    │                                                                      │
    │   /site.css      exact ".css"        → max-age=3600                 │
    │   /app.js        wildcard "*"        → no-cache                     │
    │   /SITE.CSS      ".CSS" != ".css"    → no-cache                     │
    │                                                                      │
    │   cache_control = {}                                                 │
    │   /anything      built-in default    → max-age=86400                │
    └─────────────────────────────────────────────────────────────────────┘

Extension matching is case-sensitive and uses the text from the LAST dot
of the file name ("bundle.min.js" → ".js").

=============================================================================
"""

from typing import Dict, Mapping

from ..config import DEFAULT_CACHE_CONTROL
from ..filesystem import FileNode
from ..http.response import format_http_date


WILDCARD = "*"


class CacheHeaderPolicy:
    """Maps file extensions to Cache-Control directives."""

    def __init__(self, rules: Mapping[str, str], default: str = DEFAULT_CACHE_CONTROL):
        self.rules = rules
        self.default = default

    def cache_control(self, extension: str) -> str:
        """Exact extension, then "*", then the built-in default."""
        if extension in self.rules:
            return self.rules[extension]
        return self.rules.get(WILDCARD, self.default)

    def headers_for(self, node: FileNode) -> Dict[str, str]:
        return {
            "Cache-Control": self.cache_control(node.extension),
            "Last-Modified": format_http_date(node.modified),
        }
