"""
=============================================================================
DIRECTORY LISTING
=============================================================================

Renders the HTML page shown for a directory that has no index file (only
when listings are enabled).

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Index of /docs/                                                   │
    │                                                                      │
    │   Name                Size        Modified                          │
    │   ../                                                               │
    │   images/             -           2024-06-15 10:00:00               │
    │   guide.html          2048        2024-06-15 09:30:12               │
    │   readme.txt          120         2024-06-14 18:02:45               │
    └─────────────────────────────────────────────────────────────────────┘

Directories come first, then files, each group by name. Times are UTC.
Names are HTML-escaped in text and percent-encoded in links, so a file
called "<script>.html" shows up as text and links correctly.

=============================================================================
"""

import html
from typing import Iterable, List
from urllib.parse import quote

from ..filesystem import FileNode


_STYLE = """
body { font-family: -apple-system, BlinkMacSystemFont, sans-serif; margin: 2em; color: #222; }
h1 { font-size: 1.4em; border-bottom: 1px solid #ddd; padding-bottom: .4em; }
table { border-collapse: collapse; }
th, td { text-align: left; padding: .25em 2em .25em 0; }
td.size { text-align: right; font-family: monospace; }
td.mtime { font-family: monospace; color: #666; }
a { color: #0366d6; text-decoration: none; }
a:hover { text-decoration: underline; }
"""


def sort_entries(entries: Iterable[FileNode]) -> List[FileNode]:
    """Directories first, then by name."""
    return sorted(entries, key=lambda node: (not node.is_dir, node.name))


def _row(node: FileNode) -> str:
    display = node.name + "/" if node.is_dir else node.name
    href = quote(node.name) + ("/" if node.is_dir else "")
    size = "-" if node.is_dir else str(node.size)
    mtime = node.modified.strftime("%Y-%m-%d %H:%M:%S")
    return (
        f'<tr><td><a href="{href}">{html.escape(display)}</a></td>'
        f'<td class="size">{size}</td>'
        f'<td class="mtime">{mtime}</td></tr>'
    )


def render_listing(path: str, entries: Iterable[FileNode]) -> str:
    """
    Build the listing page for the directory at `path`.

    Entries are rendered in the order given; pass them through
    sort_entries() first.
    """
    title = html.escape(f"Index of {path}")

    rows = []
    if path != "/":
        rows.append('<tr><td><a href="../">../</a></td><td></td><td></td></tr>')
    rows.extend(_row(node) for node in entries)

    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{title}</title>\n"
        f"<style>{_STYLE}</style>\n"
        "</head>\n"
        "<body>\n"
        f"<h1>{title}</h1>\n"
        "<table>\n"
        "<tr><th>Name</th><th>Size</th><th>Modified</th></tr>\n"
        + "\n".join(rows)
        + "\n</table>\n"
        "</body>\n"
        "</html>\n"
    )


class DirectoryListingRenderer:
    """Sorts and renders directory entries. Stateless."""

    def render(self, path: str, entries: Iterable[FileNode]) -> str:
        return render_listing(path, sort_entries(entries))
