"""
Unit tests for path cleaning and the filesystem implementations.
"""

import errno

import pytest

from statiq.filesystem import FileNode, LocalFileSystem, MemoryFileSystem, clean_path


class TestCleanPath:
    """Tests for clean_path()."""

    @pytest.mark.parametrize("raw, cleaned", [
        ("", "/"),
        ("/", "/"),
        ("docs", "/docs"),
        ("/docs/", "/docs"),
        ("//docs///guide", "/docs/guide"),
        ("/docs/./guide", "/docs/guide"),
        ("/docs/../css", "/css"),
        ("/../../etc/passwd", "/etc/passwd"),
        ("..", "/"),
        ("/a/b/../../..", "/"),
    ])
    def test_clean(self, raw, cleaned):
        """Test normalization and clamping at the root."""
        assert clean_path(raw) == cleaned


class TestFileNode:
    """Tests for FileNode helpers."""

    @pytest.mark.parametrize("name, extension", [
        ("site.css", ".css"),
        ("app.min.js", ".js"),
        (".htaccess", ".htaccess"),
        ("Makefile", ""),
        ("SHOUT.CSS", ".CSS"),
    ])
    def test_extension(self, name, extension):
        """Test that the extension starts at the last dot."""
        node = FileNode(path="/" + name, name=name, is_dir=False, size=0, mtime=0)

        assert node.extension == extension

    def test_modified_is_utc(self):
        """Test the aware datetime."""
        node = FileNode(path="/a", name="a", is_dir=False, size=0, mtime=1718445600)

        assert node.modified.isoformat() == "2024-06-15T10:00:00+00:00"


class TestMemoryFileSystem:
    """Tests for the in-memory filesystem."""

    def test_parents_created(self):
        """Test that adding a file creates its directories."""
        fs = MemoryFileSystem().add_file("/a/b/c.txt", b"abc")

        assert fs.stat("/a").is_dir
        assert fs.stat("/a/b").is_dir
        assert fs.stat("/a/b/c.txt").size == 3

    def test_open(self):
        """Test reading content."""
        fs = MemoryFileSystem({"/x.txt": b"hello"})

        with fs.open("/x.txt") as fh:
            assert fh.read() == b"hello"

    def test_open_directory(self):
        """Test that opening a directory fails."""
        with pytest.raises(IsADirectoryError):
            MemoryFileSystem().add_directory("/d").open("/d")

    def test_missing(self):
        """Test FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            MemoryFileSystem().stat("/nope")

    def test_file_as_directory(self):
        """Test NotADirectoryError for a path below a file."""
        fs = MemoryFileSystem({"/x.txt": b"x"})

        with pytest.raises(NotADirectoryError):
            fs.stat("/x.txt/y")

    def test_deny_and_fail(self):
        """Test injected failures."""
        fs = MemoryFileSystem({"/x.txt": b"x"})
        fs.deny("/x.txt")
        fs.fail("/y.txt", OSError(errno.EIO, "I/O error"))

        with pytest.raises(PermissionError):
            fs.stat("/x.txt")
        with pytest.raises(OSError) as exc_info:
            fs.stat("/y.txt")
        assert exc_info.value.errno == errno.EIO

    def test_read_directory(self):
        """Test immediate children only, denied entries skipped."""
        fs = MemoryFileSystem()
        fs.add_file("/d/a.txt", b"a")
        fs.add_file("/d/sub/b.txt", b"b")
        fs.add_file("/d/hidden.txt", b"h").deny("/d/hidden.txt")

        names = sorted(node.name for node in fs.read_directory("/d"))

        assert names == ["a.txt", "sub"]


class TestLocalFileSystem:
    """Tests for the disk-backed filesystem."""

    def test_stat(self, site):
        """Test metadata from disk."""
        fs = LocalFileSystem(str(site))

        node = fs.stat("/css/site.css")

        assert node.path == "/css/site.css"
        assert node.name == "site.css"
        assert node.is_dir is False
        assert node.size == 20

    def test_root(self, site):
        """Test the root directory node."""
        node = LocalFileSystem(str(site)).stat("/")

        assert node.is_dir
        assert node.path == "/"

    def test_read_directory(self, site):
        """Test listing a directory from disk."""
        nodes = LocalFileSystem(str(site)).read_directory("/sub")

        assert sorted(n.name for n in nodes) == ["nested", "readme.txt"]
        assert {n.path for n in nodes} == {"/sub/nested", "/sub/readme.txt"}

    def test_dotdot_stays_in_root(self, site):
        """Test that '..' is clamped before touching disk."""
        node = LocalFileSystem(str(site)).stat("/../../sub/readme.txt")

        assert node.path == "/sub/readme.txt"

    def test_symlink_escape(self, site, tmp_path):
        """Test that a link out of the root raises PermissionError."""
        (tmp_path / "secret").mkdir()
        (site / "escape").symlink_to(tmp_path / "secret")

        with pytest.raises(PermissionError):
            LocalFileSystem(str(site)).stat("/escape")

    def test_escaping_links_skipped_in_listing(self, site, tmp_path):
        """Test that listings leave out links that leave the root."""
        (tmp_path / "outside.txt").write_text("x")
        (site / "sub" / "leak.txt").symlink_to(tmp_path / "outside.txt")

        names = {n.name for n in LocalFileSystem(str(site)).read_directory("/sub")}

        assert "leak.txt" not in names

    def test_prefix_sibling_is_not_inside(self, tmp_path):
        """Test that /srv/site-other is not treated as inside /srv/site."""
        root = tmp_path / "site"
        root.mkdir()
        other = tmp_path / "site-other"
        other.mkdir()
        (other / "x.txt").write_text("x")
        (root / "link").symlink_to(other / "x.txt")

        with pytest.raises(PermissionError):
            LocalFileSystem(str(root)).stat("/link")
