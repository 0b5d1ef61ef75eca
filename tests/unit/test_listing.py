"""
Unit tests for directory listing rendering.
"""

from statiq.filesystem import FileNode
from statiq.handlers.listing import DirectoryListingRenderer, render_listing, sort_entries

from helpers import MTIME


def entry(name: str, is_dir: bool = False, size: int = 0) -> FileNode:
    return FileNode(path="/d/" + name, name=name, is_dir=is_dir, size=size, mtime=MTIME)


class TestSortEntries:
    """Tests for listing order."""

    def test_directories_first(self):
        """Test directories before files, each group by name."""
        entries = [entry("b.txt"), entry("z", is_dir=True), entry("a.txt"), entry("c", is_dir=True)]

        assert [e.name for e in sort_entries(entries)] == ["c", "z", "a.txt", "b.txt"]


class TestRenderListing:
    """Tests for the HTML page."""

    def test_title_and_rows(self):
        """Test basic content."""
        page = render_listing("/docs/", [entry("images", is_dir=True), entry("guide.html", size=2048)])

        assert "<title>Index of /docs/</title>" in page
        assert '<a href="images/">images/</a>' in page
        assert '<a href="guide.html">guide.html</a>' in page
        assert '<td class="size">2048</td>' in page
        assert '<td class="size">-</td>' in page
        assert "2024-06-15 10:00:00" in page

    def test_parent_link(self):
        """Test that only non-root listings link upwards."""
        assert '<a href="../">' in render_listing("/docs/", [])
        assert '<a href="../">' not in render_listing("/", [])

    def test_names_escaped(self):
        """Test that markup in names is neither rendered nor broken in links."""
        page = render_listing("/", [entry("<script>.html")])

        assert "<script>.html" not in page
        assert "&lt;script&gt;.html" in page
        assert 'href="%3Cscript%3E.html"' in page

    def test_spaces_quoted(self):
        """Test percent-encoding of hrefs."""
        page = render_listing("/", [entry("my file.txt")])

        assert 'href="my%20file.txt"' in page
        assert ">my file.txt<" in page

    def test_renderer_sorts(self):
        """Test that the renderer applies the ordering."""
        page = DirectoryListingRenderer().render("/", [entry("a.txt"), entry("sub", is_dir=True)])

        assert page.index("sub/") < page.index("a.txt")
