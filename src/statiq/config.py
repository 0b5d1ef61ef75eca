"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses:

    StaticConfig   WHAT to serve and how to answer each kind of request.
                   Immutable; read by every worker thread without locks.

    ServerConfig   HOW the host process listens (address, workers,
                   timeouts, logging).

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line flags       statiq --root ./public --spa          │
    │   2. JSON config file         statiq --config statiq.json           │
    │   3. Environment variables    STATIQ_ROOT=./public statiq           │
    │   4. Defaults                 (this module)                         │
    └─────────────────────────────────────────────────────────────────────┘

The JSON file uses camelCase keys:

    {
        "root": "./public",
        "enableDirectoryListing": false,
        "indexFiles": ["index.html", "index.htm"],
        "spaMode": true,
        "spaIndex": "index.html",
        "errorPage404": "404.html",
        "cacheControl": {".css": "max-age=3600", "*": "max-age=600"}
    }

=============================================================================
FAIL FAST
=============================================================================

Bad settings are rejected when the handler is built, never on the first
request that happens to need them:

    validate()   shape checks                      → ConfigError
    resolved()   root must exist (or be created)   → RootUnavailable
    handler      error page must exist under root  → ErrorPageMissing

No handler exists unless all three pass.

=============================================================================
"""

import json
import os
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple


DEFAULT_CACHE_CONTROL = "max-age=86400"


class ConfigError(ValueError):
    """Invalid static-serving configuration. Fatal at construction."""


class RootUnavailable(ConfigError):
    """The root directory does not exist (and may not be created) or is not a directory."""


class ErrorPageMissing(ConfigError):
    """The configured custom 404 page does not exist under the root."""


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _inside_root(path) -> bool:
    """True for a relative path with no ".." segment."""
    if not isinstance(path, str) or os.path.isabs(path):
        return False
    return ".." not in path.replace("\\", "/").split("/")


@dataclass(frozen=True)
class StaticConfig:
    """
    Static file serving settings.

    =========================================================================
    FIELDS
    =========================================================================

    root                Base directory every request resolves against.
    directory_listing   Render an HTML listing for directories without an
                        index file (otherwise they are treated as missing).
    index_files         Names probed, IN ORDER, when a directory is
                        requested. The first one that exists wins.
    spa_mode            Answer every miss with spa_index_file (200).
    spa_index_file      File served in SPA mode, relative to root, no "..".
    error_page_404      File served (with 200!) for misses when spa_mode
                        is off. Relative to root, no "..". Must exist at startup.
    cache_control       Extension → Cache-Control value. "*" is the
                        wildcard; "max-age=86400" applies when neither an
                        exact nor a wildcard entry matches.
    create_root         Policy for a missing root: create it (True) or
                        refuse to start with RootUnavailable (False).

    =========================================================================
    """

    root: str = "."
    directory_listing: bool = False
    index_files: Tuple[str, ...] = ("index.html", "index.htm")
    spa_mode: bool = False
    spa_index_file: str = "index.html"
    error_page_404: Optional[str] = None
    cache_control: Mapping[str, str] = field(default_factory=dict)
    create_root: bool = False

    def __post_init__(self):
        if isinstance(self.index_files, str) or not isinstance(self.index_files, Iterable):
            raise ConfigError(f"index_files must be a list of names, got {self.index_files!r}")
        if not isinstance(self.cache_control, Mapping):
            raise ConfigError(f"cache_control must be a mapping, got {self.cache_control!r}")

        # Frozen dataclass: freeze the containers too
        object.__setattr__(self, "index_files", tuple(self.index_files))
        object.__setattr__(self, "cache_control", MappingProxyType(dict(self.cache_control)))
        if self.error_page_404 == "":
            object.__setattr__(self, "error_page_404", None)

    # ─────────────────────────────────────────────────────────────────────
    # LOADERS
    # ─────────────────────────────────────────────────────────────────────

    _WIRE_KEYS = {
        "root": "root",
        "enableDirectoryListing": "directory_listing",
        "indexFiles": "index_files",
        "spaMode": "spa_mode",
        "spaIndex": "spa_index_file",
        "errorPage404": "error_page_404",
        "cacheControl": "cache_control",
        "createRoot": "create_root",
    }

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], base: Optional["StaticConfig"] = None
    ) -> "StaticConfig":
        """
        Build from a mapping using the JSON wire keys.

        Python field names are accepted as well. Unknown keys raise
        ConfigError so a typo ("spamode") does not silently do nothing.
        Keys absent from `data` keep their value from `base` (or the
        defaults).
        """
        field_names = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = cls._WIRE_KEYS.get(key, key)
            if name not in field_names:
                raise ConfigError(f"Unknown configuration key: {key!r}")
            kwargs[name] = value
        if base is not None:
            return replace(base, **kwargs)
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str, base: Optional["StaticConfig"] = None) -> "StaticConfig":
        """Load a JSON configuration file."""
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        return cls.from_dict(data, base)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StaticConfig":
        """
        Build from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        STATIQ_ROOT               Root directory (default: .)
        STATIQ_DIRECTORY_LISTING  true/false
        STATIQ_INDEX_FILES        Comma separated: index.html,index.htm
        STATIQ_SPA_MODE           true/false
        STATIQ_SPA_INDEX          SPA fallback file
        STATIQ_ERROR_PAGE_404     Custom 404 page
        STATIQ_CACHE_CONTROL      JSON object: {".css": "max-age=3600"}
        STATIQ_CREATE_ROOT        true/false

        =====================================================================
        """
        env = os.environ if environ is None else environ
        kwargs: dict = {}

        if "STATIQ_ROOT" in env:
            kwargs["root"] = env["STATIQ_ROOT"]
        if "STATIQ_DIRECTORY_LISTING" in env:
            kwargs["directory_listing"] = _parse_bool(env["STATIQ_DIRECTORY_LISTING"])
        if "STATIQ_INDEX_FILES" in env:
            kwargs["index_files"] = tuple(
                name.strip() for name in env["STATIQ_INDEX_FILES"].split(",") if name.strip()
            )
        if "STATIQ_SPA_MODE" in env:
            kwargs["spa_mode"] = _parse_bool(env["STATIQ_SPA_MODE"])
        if "STATIQ_SPA_INDEX" in env:
            kwargs["spa_index_file"] = env["STATIQ_SPA_INDEX"]
        if "STATIQ_ERROR_PAGE_404" in env:
            kwargs["error_page_404"] = env["STATIQ_ERROR_PAGE_404"] or None
        if "STATIQ_CACHE_CONTROL" in env:
            try:
                kwargs["cache_control"] = json.loads(env["STATIQ_CACHE_CONTROL"])
            except json.JSONDecodeError as e:
                raise ConfigError(f"STATIQ_CACHE_CONTROL is not valid JSON: {e}") from e
        if "STATIQ_CREATE_ROOT" in env:
            kwargs["create_root"] = _parse_bool(env["STATIQ_CREATE_ROOT"])

        return cls(**kwargs)

    # ─────────────────────────────────────────────────────────────────────
    # VALIDATION
    # ─────────────────────────────────────────────────────────────────────

    def validate(self) -> None:
        """
        Check value shapes. Touches no filesystem.

        Raises:
            ConfigError: on the first invalid value.
        """
        if not isinstance(self.root, str) or not self.root:
            raise ConfigError("root must be a non-empty path")

        for name in self.index_files:
            if not isinstance(name, str) or not name or "/" in name or name in (".", ".."):
                raise ConfigError(f"Invalid index file name: {name!r}")

        if self.spa_mode and not self.spa_index_file:
            raise ConfigError("spa_index_file is required when spa_mode is enabled")

        if self.spa_mode and not _inside_root(self.spa_index_file):
            raise ConfigError(
                f"spa_index_file must be a path inside root: {self.spa_index_file!r}"
            )

        if self.error_page_404 is not None and not _inside_root(self.error_page_404):
            raise ConfigError(
                f"error_page_404 must be a path inside root: {self.error_page_404!r}"
            )

        for extension, directive in self.cache_control.items():
            if not isinstance(extension, str) or not isinstance(directive, str):
                raise ConfigError(
                    f"cache_control entries must map strings to strings: {extension!r}"
                )

    def resolved(self) -> "StaticConfig":
        """
        Return a copy with an absolute, normalized root that exists.

        Missing root: created when create_root is set, otherwise
        RootUnavailable. A root that exists but is a file is always
        RootUnavailable.
        """
        root = os.path.abspath(os.path.expanduser(self.root))

        if not os.path.exists(root):
            if not self.create_root:
                raise RootUnavailable(f"Root directory does not exist: {root}")
            try:
                os.makedirs(root, exist_ok=True)
            except OSError as e:
                raise RootUnavailable(f"Cannot create root directory {root}: {e}") from e

        if not os.path.isdir(root):
            raise RootUnavailable(f"Root is not a directory: {root}")

        return replace(self, root=root)


@dataclass
class ServerConfig:
    """
    Settings for the host process that feeds requests to the handler.

    Development:
        ServerConfig(host="127.0.0.1", port=8080, log_level="DEBUG")

    Containers:
        ServerConfig(host="0.0.0.0", port=80, workers=16)
    """

    # Network
    host: str = "127.0.0.1"
    port: int = 8080
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    # Static serving never reads a body; this only bounds the request head.
    max_request_size: int = 1024 * 1024

    # Concurrency
    workers: int = 8
    queue_size: int = 256

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = "statiq"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        STATIQ_HOST, STATIQ_PORT, STATIQ_WORKERS, STATIQ_TIMEOUT,
        STATIQ_LOG_LEVEL, STATIQ_LOG_FORMAT.
        """
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("STATIQ_HOST", "127.0.0.1"),
            port=int(env.get("STATIQ_PORT", "8080")),
            workers=int(env.get("STATIQ_WORKERS", "8")),
            timeout=float(env.get("STATIQ_TIMEOUT", "30")),
            log_level=env.get("STATIQ_LOG_LEVEL", "INFO"),
            log_format=env.get("STATIQ_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
