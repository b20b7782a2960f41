"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

    python -m fileserver [options]
    fileserver [options]

Settings are resolved in this order, later wins:

    defaults → --config properties file → FILESERVER_* env vars → flags

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .server import FileServer, setup_logging


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Minimal multi-threaded HTTP/1.1 static file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fileserver                          # Bundled pages on :8000
  python -m fileserver --port 3000              # Custom port
  python -m fileserver --static ./public        # Serve a directory
  python -m fileserver -c server.properties     # Load a properties file
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONFIGURATION SOURCE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Properties file (file.server.port=..., file.server.pool.size=...)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8000)"
    )
    parser.add_argument(
        "--timeout-ms", "-t",
        type=int,
        default=None,
        help="Read timeout per connection in milliseconds (default: 10000)"
    )
    parser.add_argument(
        "--max-request-size",
        type=int,
        default=None,
        help="Largest accepted request head in bytes (default: 65536)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: 50)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT AND LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--static", "-s",
        default=None,
        help="Directory to serve (default: the bundled pages)"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Load configuration, then apply the flags that were given."""
    config = ServerConfig.load(properties_path=args.config)

    overrides = {
        "host": args.host,
        "port": args.port,
        "timeout_ms": args.timeout_ms,
        "max_request_size": args.max_request_size,
        "pool_size": args.workers,
        "static_dir": args.static,
        "log_level": args.log_level,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Process exit code: 0 after a clean shutdown, 1 if the server could
        not be configured or started.
    """
    args = build_parser().parse_args(argv)

    # Before config loading, which logs
    setup_logging(args.log_level or "INFO")

    try:
        server = FileServer(build_config(args))
        server.run()
    except (OSError, ValueError) as e:
        logger.error(f"Unable to start server: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
