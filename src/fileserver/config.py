"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunable settings live in one dataclass, ServerConfig.

=============================================================================
WHERE VALUES COME FROM
=============================================================================

ServerConfig.load() layers three sources, later ones winning:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. DEFAULTS          the dataclass field defaults                   │
    │          │                                                           │
    │          ▼                                                           │
    │  2. PROPERTIES FILE   file.server.port=9000                          │
    │          │            file.server.pool.size=20                       │
    │          ▼                                                           │
    │  3. ENVIRONMENT       FILESERVER_PORT=9000                           │
    └─────────────────────────────────────────────────────────────────────┘

The command line (see __main__.py) is applied on top of the result.

Loading is forgiving: a value that is missing keeps its default and is
logged at INFO, a value that does not parse keeps its default and is logged
at WARNING. load() never raises. validate() is the strict check, used when
a config is built by hand.

    Properties key                                Environment variable
    ────────────────────────────────────────────  ───────────────────────
    file.server.port                              FILESERVER_PORT
    file.server.pool.size                         FILESERVER_POOL_SIZE
    file.server.connection.timeout.milliseconds   FILESERVER_TIMEOUT_MS
    file.server.default.computer.name             FILESERVER_HOST_LABEL
    file.server.static.dir                        FILESERVER_STATIC_DIR
    file.server.host                              FILESERVER_HOST
    file.server.log.level                         FILESERVER_LOG_LEVEL
    file.server.max.request.size                  FILESERVER_MAX_REQUEST_SIZE

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Union


logger = logging.getLogger(__name__)


# Config attribute → (properties key, environment variable)
SETTING_SOURCES = {
    "port": ("file.server.port", "FILESERVER_PORT"),
    "pool_size": ("file.server.pool.size", "FILESERVER_POOL_SIZE"),
    "timeout_ms": ("file.server.connection.timeout.milliseconds", "FILESERVER_TIMEOUT_MS"),
    "default_host_label": ("file.server.default.computer.name", "FILESERVER_HOST_LABEL"),
    "static_dir": ("file.server.static.dir", "FILESERVER_STATIC_DIR"),
    "host": ("file.server.host", "FILESERVER_HOST"),
    "log_level": ("file.server.log.level", "FILESERVER_LOG_LEVEL"),
    "max_request_size": ("file.server.max.request.size", "FILESERVER_MAX_REQUEST_SIZE"),
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, timeout_ms, max_request_size

    THREADING SETTINGS
    - pool_size

    STATIC FILES
    - static_dir

    IDENTITY AND LOGGING
    - default_host_label, server_name, log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.

    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8000
    """The port number to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Maximum number of connections queued by the OS before accept()."""

    timeout_ms: int = 10000
    """
    Read timeout applied to every accepted socket, in milliseconds.

    A client that sends nothing for this long has its connection closed.
    """

    max_request_size: int = 64 * 1024  # 64 KB
    """
    Maximum size of a request head (request line plus headers) in bytes.
    A client that sends more is disconnected without a response.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    pool_size: int = 50
    """Number of worker threads. Fixed for the lifetime of the server."""

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    static_dir: Optional[str] = None
    """
    Directory served as the site root.

    None serves the pages bundled with the package.
    """

    # ─────────────────────────────────────────────────────────────────────
    # IDENTITY AND LOGGING
    # ─────────────────────────────────────────────────────────────────────

    default_host_label: str = "fileserver"
    """Logged as the host name when the real one cannot be determined."""

    server_name: str = "FileServer/1.0"
    """Value of the Server response header."""

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @property
    def timeout(self) -> float:
        """Read timeout in seconds, as sockets expect it."""
        return self.timeout_ms / 1000.0

    # =========================================================================
    # LOADING
    # =========================================================================

    @classmethod
    def load(
        cls,
        properties_path: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ServerConfig":
        """
        Build a config from defaults, a properties file and the environment.

        Args:
            properties_path: Java-style properties file. Skipped when None.
            environ: Environment to read. Defaults to os.environ.

        Returns:
            A config where every field holds a usable value.

        Example:
            config = ServerConfig.load("server.properties")
        """
        config = cls()

        properties: Dict[str, str] = {}
        if properties_path is not None:
            properties = read_properties(properties_path)

        if environ is None:
            environ = os.environ

        for name, (property_key, env_var) in SETTING_SOURCES.items():
            if property_key in properties:
                config._apply(name, properties[property_key], property_key)
            else:
                logger.info(
                    f"{property_key} is not set, using default value: "
                    f"{getattr(config, name)!r}"
                )
            if env_var in environ:
                config._apply(name, environ[env_var], env_var)

        return config

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables only.

        =====================================================================
        USAGE
        =====================================================================

            # From shell:
            FILESERVER_PORT=3000 FILESERVER_LOG_LEVEL=DEBUG python -m fileserver

            # In code:
            config = ServerConfig.from_env()
            server = FileServer(config)

        =====================================================================
        """
        return cls.load(properties_path=None, environ=environ)

    def _apply(self, name: str, raw: str, source: str):
        """Parse ``raw`` for field ``name``; keep the current value if invalid."""
        parser = _FIELD_PARSERS[name]
        value = raw.strip()
        try:
            parsed = parser(value)
        except ValueError as e:
            logger.warning(
                f"Invalid value {raw!r} for {source} ({e}), "
                f"using {getattr(self, name)!r}"
            )
            return
        setattr(self, name, parsed)

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: Describing the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.pool_size < 1:
            raise ValueError("pool_size must be >= 1")

        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.max_request_size < 1:
            raise ValueError("max_request_size must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")


# =============================================================================
# FIELD PARSERS
# =============================================================================

def _bounded_int(low: int, high: Optional[int] = None) -> Callable[[str], int]:
    def parse(value: str) -> int:
        number = int(value)
        if number < low or (high is not None and number > high):
            upper = high if high is not None else "∞"
            raise ValueError(f"must be between {low} and {upper}")
        return number
    return parse


def _non_empty(value: str) -> str:
    if not value:
        raise ValueError("must not be empty")
    return value


def _log_level(value: str) -> str:
    level = value.upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
    return level


_FIELD_PARSERS: Dict[str, Callable[[str], object]] = {
    "port": _bounded_int(0, 65535),
    "pool_size": _bounded_int(1),
    "timeout_ms": _bounded_int(1),
    "default_host_label": _non_empty,
    "static_dir": _non_empty,
    "host": _non_empty,
    "log_level": _log_level,
    "max_request_size": _bounded_int(1),
}


# =============================================================================
# PROPERTIES FILES
# =============================================================================

def read_properties(path: Union[str, Path]) -> Dict[str, str]:
    """
    Read a Java-style ``.properties`` file.

    Supported subset:

        # comment             ! comment
        key=value             key: value            key value

    Keys and values are stripped. Line continuations and escapes are not
    supported. A file that cannot be read is logged and treated as empty.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Unable to read properties file {path}: {e}")
        return {}

    properties: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line[0] in "#!":
            continue

        # The first "=", ":" or whitespace separates key from value
        for index, char in enumerate(line):
            if char in "=:" or char.isspace():
                key, value = line[:index], line[index + 1:].strip()
                # "key = value": whitespace before the separator
                if char.isspace() and value[:1] in ("=", ":"):
                    value = value[1:].strip()
                break
        else:
            key, value = line, ""

        properties[key] = value

    return properties
