"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the static file server.

=============================================================================
WHY A FROZEN DATACLASS?
=============================================================================

The configuration is built ONCE at startup (from the command line) and then
handed by reference to the listener, the worker pool and every request
pipeline:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION FLOW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   argv ──► argparse ──► ServerConfig.from_args() ──► validate()      │
    │                                   │                                  │
    │                 ┌─────────────────┼─────────────────┐                │
    │                 ▼                 ▼                 ▼                │
    │             Listener         WorkerPool      ProtocolPipeline        │
    │                                                                      │
    │   frozen=True: no thread can mutate it after startup, so it is       │
    │   safe to read from every worker without a lock.                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no process-wide "current web root" variable anywhere in the
package. Everything that needs the root reads it from the config object it
was given.

=============================================================================
"""

import argparse
import os
from dataclasses import dataclass

from .errors import StartupError


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, max_connections, accept_timeout

    REQUEST HANDLING
    - root_directory, buffer_size, max_request_line, request_timeout

    CONCURRENCY
    - worker_count, queue_size, shutdown_timeout

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUIRED
    # ─────────────────────────────────────────────────────────────────────

    port: int
    """Port to listen on. 0 lets the OS pick a free port (used by tests)."""

    root_directory: str
    """Web root. Requested URIs are appended to this path."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind to. All interfaces by default."""

    max_connections: int = 10
    """Listen backlog: connections the kernel queues before refusing."""

    accept_timeout: float = 0.5
    """
    How long accept() blocks before re-checking the shutdown event.
    Smaller = faster shutdown, more wakeups while idle.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST HANDLING
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 2048
    """Bytes requested per recv() call."""

    max_request_line: int = 8192
    """Bytes read without finding a line ending before giving up."""

    request_timeout: float = 10.0
    """
    Deadline for a whole request, measured from accept().
    Covers time spent waiting in the queue, reading and writing.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    worker_count: int = 4
    """Number of worker threads. Fixed for the lifetime of the server."""

    queue_size: int = 64
    """
    Pending connections the pool holds before submit() blocks.
    A full queue stalls the accept loop (back-pressure) and the kernel
    backlog absorbs the rest.
    """

    shutdown_timeout: float = 5.0
    """Seconds to wait for the queue to drain during shutdown."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ServerConfig":
        """
        Build a configuration from parsed command-line arguments.

        Optional flags that were not given fall back to the dataclass
        defaults.
        """
        overrides = {
            "max_connections": args.backlog,
            "worker_count": args.workers,
            "queue_size": args.queue_size,
            "request_timeout": args.timeout,
            "log_level": args.log_level,
        }
        return cls(
            port=args.port,
            root_directory=args.webroot,
            **{name: value for name, value in overrides.items() if value is not None},
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at startup: a bad value raises StartupError before any
        socket is opened.
        """
        if not 0 <= self.port < 65536:
            raise StartupError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not os.path.isdir(self.root_directory):
            raise StartupError(f"Web root is not a directory: {self.root_directory!r}")

        if self.max_connections < 1:
            raise StartupError("max_connections must be >= 1")

        if self.worker_count < 1:
            raise StartupError("worker_count must be >= 1")

        if self.queue_size < 1:
            raise StartupError("queue_size must be >= 1")

        if self.buffer_size < 1:
            raise StartupError("buffer_size must be >= 1")

        if self.max_request_line < self.buffer_size:
            raise StartupError("max_request_line must be >= buffer_size")

        if self.request_timeout <= 0:
            raise StartupError("request_timeout must be > 0")

        if self.accept_timeout <= 0:
            raise StartupError("accept_timeout must be > 0")
