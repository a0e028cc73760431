"""
=============================================================================
STATIC FILE SERVER CLI ENTRY POINT
=============================================================================

=============================================================================
USAGE
=============================================================================

    # Serve ./public on port 8080
    python -m staticserver 8080 ./public

    # More workers, longer per-request deadline
    python -m staticserver 8080 ./public --workers 8 --timeout 30

    # Installed console script
    staticserver 8080 ./public

Missing or malformed arguments (no web root, a port that is not a number,
a web root that is not a directory) print usage and exit with status 2
before any socket is opened. A failure to bind or listen exits with
status 1.

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .errors import StartupError
from .server import StaticFileServer


logger = logging.getLogger("staticserver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Serve .html, .jpg, .css and .js files from a web root",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver 8080 ./public                # Defaults
  python -m staticserver 8080 ./public --workers 8    # 8 worker threads
  python -m staticserver 8080 ./public -l DEBUG       # Verbose logging
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUIRED
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("port", type=int, help="Port to listen on")
    parser.add_argument("webroot", help="Directory to serve files from")

    # ─────────────────────────────────────────────────────────────────────
    # TUNING (defaults live in ServerConfig)
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of worker threads (default: 4)"
    )
    parser.add_argument(
        "--backlog", "-b",
        type=int,
        help="Listen backlog (default: 10)"
    )
    parser.add_argument(
        "--queue-size", "-q",
        type=int,
        help="Pending connections before accept stalls (default: 64)"
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Per-request deadline in seconds (default: 10)"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Parse arguments, build the config, run the server.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ServerConfig.from_args(args)
        config.validate()
    except StartupError as e:
        parser.error(str(e))  # Exits with status 2

    server = StaticFileServer(config)

    try:
        server.run()
    except StartupError as e:
        logger.error(f"Fatal: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
