"""
Unit tests for MIME type detection.
"""

import pytest

from statiq.http.mime_types import DEFAULT_MIME_TYPE, MimeTypes, is_text_type


class TestMimeTypes:
    """Tests for MimeTypes lookups."""

    @pytest.mark.parametrize("name, expected", [
        ("index.html", "text/html"),
        ("site.css", "text/css"),
        ("app.min.js", "text/javascript"),
        ("data.json", "application/json"),
        ("logo.PNG", "image/png"),
        ("/deep/path/readme.txt", "text/plain"),
        ("archive.unknownext", DEFAULT_MIME_TYPE),
        ("Makefile", DEFAULT_MIME_TYPE),
    ])
    def test_mime_type(self, name, expected):
        """Test extension lookup."""
        assert MimeTypes().mime_type(name) == expected

    def test_content_type_charset(self):
        """Test that text types get a charset."""
        mime = MimeTypes()

        assert mime.content_type("a.html") == "text/html; charset=utf-8"
        assert mime.content_type("a.json") == "application/json; charset=utf-8"
        assert mime.content_type("a.png") == "image/png"

    def test_overrides(self):
        """Test overriding and adding entries."""
        mime = MimeTypes(overrides={"md": "text/plain", ".HTML": "application/xhtml+xml"})

        assert mime.mime_type("README.md") == "text/plain"
        assert mime.mime_type("a.html") == "application/xhtml+xml"
        assert ".md" in mime

    def test_custom_table(self):
        """Test replacing the whole table."""
        mime = MimeTypes(types={".x": "text/x"}, default="text/plain")

        assert len(mime) == 1
        assert mime.mime_type("a.x") == "text/x"
        assert mime.mime_type("a.html") == "text/plain"

    def test_table_read_only(self):
        """Test immutability."""
        with pytest.raises(TypeError):
            MimeTypes().types[".x"] = "text/x"


class TestIsTextType:
    """Tests for is_text_type()."""

    @pytest.mark.parametrize("mime_type, expected", [
        ("text/plain", True),
        ("image/svg+xml", True),
        ("application/json", True),
        ("image/png", False),
        ("application/octet-stream", False),
    ])
    def test_is_text_type(self, mime_type, expected):
        assert is_text_type(mime_type) is expected
