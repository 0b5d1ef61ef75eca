"""
Unit tests for command-line parsing and configuration layering.
"""

import json

import pytest

from statiq.__main__ import build_parser, load_server_config, load_static_config, main


def parse(*argv):
    return build_parser().parse_args(list(argv))


class TestParser:
    """Tests for argument parsing."""

    def test_positional_root(self):
        """Test ROOT as a positional argument."""
        config = load_static_config(parse("./public"), environ={})

        assert config.root == "./public"

    def test_flags(self):
        """Test content flags."""
        args = parse(
            "--root", "site", "--listing", "--spa", "--spa-index", "app.html",
            "--index", "home.html", "--index", "index.html",
            "--error-page", "404.html",
            "--cache", ".css=max-age=3600", "--cache", "*=no-cache",
        )

        config = load_static_config(args, environ={})

        assert config.root == "site"
        assert config.directory_listing is True
        assert config.spa_mode is True
        assert config.spa_index_file == "app.html"
        assert config.index_files == ("home.html", "index.html")
        assert config.error_page_404 == "404.html"
        assert config.cache_control == {".css": "max-age=3600", "*": "no-cache"}

    def test_bad_cache_rule(self, capsys):
        """Test that EXT=DIRECTIVE is enforced."""
        with pytest.raises(SystemExit):
            parse("--cache", "=no-cache")
        with pytest.raises(SystemExit):
            parse("--cache", ".css")

    def test_no_flags_means_defaults(self):
        """Test that unset flags do not override anything."""
        config = load_static_config(parse(), environ={})

        assert config.root == "."
        assert config.directory_listing is False
        assert config.spa_mode is False


class TestLayering:
    """Tests for env → file → flags precedence."""

    def test_precedence(self, tmp_path):
        """Test that each layer overrides the one before it."""
        path = tmp_path / "statiq.json"
        path.write_text(json.dumps({"root": "from-file", "spaMode": True}))
        environ = {
            "STATIQ_ROOT": "from-env",
            "STATIQ_ERROR_PAGE_404": "env404.html",
            "STATIQ_SPA_MODE": "false",
        }

        config = load_static_config(
            parse("--config", str(path), "--no-spa"), environ=environ
        )

        assert config.root == "from-file"
        assert config.error_page_404 == "env404.html"
        assert config.spa_mode is False

    def test_server_flags(self):
        """Test server flags over environment."""
        config = load_server_config(
            parse("--port", "3000", "--log-format", "json"),
            environ={"STATIQ_PORT": "9000", "STATIQ_WORKERS": "3"},
        )

        assert config.port == 3000
        assert config.workers == 3
        assert config.log_format == "json"


class TestMain:
    """Tests for main()."""

    def test_missing_root_exits_1(self, tmp_path, capsys):
        """Test that a missing root is reported, not raised."""
        assert main([str(tmp_path / "nope")]) == 1
        assert "statiq:" in capsys.readouterr().err

    def test_missing_error_page_exits_1(self, site, capsys):
        """Test startup validation of the error page."""
        assert main([str(site), "--error-page", "missing.html"]) == 1
        assert "missing.html" in capsys.readouterr().err
