"""
=============================================================================
STATIQ CLI
=============================================================================

    python -m statiq ./public
    statiq --root ./public --spa --cache .css=max-age=3600 --cache '*=no-cache'
    statiq --config statiq.json --port 3000

Settings are layered, later layers winning:

    defaults  →  STATIQ_* environment  →  --config file  →  flags

Exit status 1 when the configuration is rejected (missing root, missing
error page, invalid value); the message goes to stderr.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import Dict, List, Optional

from . import __version__
from .config import ConfigError, ServerConfig, StaticConfig
from .server import StaticServer, setup_logging


def _cache_rule(value: str) -> tuple:
    extension, sep, directive = value.partition("=")
    if not sep or not extension or not directive:
        raise argparse.ArgumentTypeError(f"expected EXT=DIRECTIVE, got {value!r}")
    return extension, directive


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statiq",
        description="Serve a directory of static files over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  statiq ./public                          # Serve ./public on 127.0.0.1:8080
  statiq ./dist --spa                      # Single-page app: misses get index.html
  statiq ./site --error-page 404.html      # Custom not-found page
  statiq ./files --listing                 # Directory listings
  statiq --config statiq.json              # Settings from a JSON file
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument("root_arg", nargs="?", metavar="ROOT",
                        help="Directory to serve (same as --root)")
    parser.add_argument("--root", "-r", help="Directory to serve (default: .)")
    parser.add_argument("--config", "-c", help="JSON configuration file")
    parser.add_argument("--create-root", action="store_true", default=None,
                        help="Create the root directory if it does not exist")
    parser.add_argument("--listing", dest="directory_listing",
                        action=argparse.BooleanOptionalAction, default=None,
                        help="Render listings for directories without an index file")
    parser.add_argument("--index", dest="index_files", action="append", metavar="NAME",
                        help="Index file name, repeatable, in priority order "
                             "(default: index.html, index.htm)")
    parser.add_argument("--spa", dest="spa_mode",
                        action=argparse.BooleanOptionalAction, default=None,
                        help="Serve the SPA index for every missing path")
    parser.add_argument("--spa-index", dest="spa_index_file", metavar="FILE",
                        help="SPA fallback file (default: index.html)")
    parser.add_argument("--error-page", dest="error_page_404", metavar="FILE",
                        help="Page served for missing paths when not in SPA mode")
    parser.add_argument("--cache", dest="cache_control", action="append",
                        type=_cache_rule, metavar="EXT=DIRECTIVE",
                        help="Cache-Control per extension, repeatable; "
                             "'*' is the wildcard (default: max-age=86400)")

    # ─────────────────────────────────────────────────────────────────────
    # SERVER
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument("--workers", "-w", type=int, help="Worker threads (default: 8)")
    parser.add_argument("--log-level", "-l", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: INFO)")
    parser.add_argument("--log-format", choices=["text", "json"],
                        help="Access log format (default: text)")

    parser.add_argument("--version", "-v", action="version", version=f"statiq {__version__}")
    return parser


def load_static_config(args: argparse.Namespace, environ=None) -> StaticConfig:
    """Layer env, config file and flags into one StaticConfig."""
    config = StaticConfig.from_env(environ)
    if args.config:
        config = StaticConfig.from_file(args.config, base=config)

    overrides: Dict[str, object] = {}
    root = args.root or args.root_arg
    if root:
        overrides["root"] = root
    for name in ("directory_listing", "spa_mode", "spa_index_file",
                 "error_page_404", "create_root"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    if args.index_files:
        overrides["index_files"] = tuple(args.index_files)
    if args.cache_control:
        overrides["cache_control"] = dict(args.cache_control)

    return replace(config, **overrides)


def load_server_config(args: argparse.Namespace, environ=None) -> ServerConfig:
    config = ServerConfig.from_env(environ)
    for name in ("host", "port", "workers", "log_level", "log_format"):
        value = getattr(args, name)
        if value is not None:
            setattr(config, name, value)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        server_config = load_server_config(args)
        setup_logging(server_config.log_level)
        static_config = load_static_config(args)
        server = StaticServer(static_config, server_config)
    except (ConfigError, ValueError) as e:
        print(f"statiq: {e}", file=sys.stderr)
        return 1

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
