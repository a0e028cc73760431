"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Ties the components together into a running server.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    STATIC FILE SERVER                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                     ┌──────────────────┐                             │
    │                     │ StaticFileServer │                             │
    │                     │  (Orchestrator)  │                             │
    │                     └────────┬─────────┘                             │
    │                              │                                       │
    │           ┌──────────────────┼──────────────────┐                    │
    │           ▼                  ▼                  ▼                    │
    │    ┌────────────┐    ┌──────────────┐   ┌──────────────────┐         │
    │    │  Listener  │───►│  WorkerPool  │──►│ ProtocolPipeline │         │
    │    │ (accept)   │    │ (N threads)  │   │ (one request)    │         │
    │    └────────────┘    └──────────────┘   └────────┬─────────┘         │
    │                                                  │                   │
    │                                         ┌────────┴────────┐          │
    │                                         ▼                 ▼          │
    │                                  ┌─────────────┐  ┌──────────────┐   │
    │                                  │PathResolver │  │ MimeRegistry │   │
    │                                  └─────────────┘  └──────────────┘   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    run()
      1. Validate config (fail fast, before any socket exists)
      2. Configure logging
      3. Bind the listening socket (fatal on failure)
      4. Start the worker pool
      5. Accept loop                       ← blocks until shutdown()
      6. Listening socket closed
      7. Pool shutdown: queued work drains, every worker is joined

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import Listener, WorkerPool
from .http import ProtocolPipeline


logger = logging.getLogger(__name__)


class StaticFileServer:
    """
    Static file server.

    Usage:
        config = ServerConfig(port=8080, root_directory="./public")
        server = StaticFileServer(config)
        server.run()        # blocks until SIGINT/SIGTERM or shutdown()

    Embedding (e.g. in tests):
        server.open()                       # bind now, learn the port
        port = server.address[1]
        threading.Thread(target=server.run).start()
        ...
        server.shutdown()
    """

    def __init__(self, config: ServerConfig, pipeline: Optional[ProtocolPipeline] = None):
        self.config = config
        self.config.validate()  # Fail fast on invalid config

        self.pipeline = pipeline or ProtocolPipeline(config)
        self.listener = Listener(config)
        self.pool = WorkerPool(
            worker_count=config.worker_count,
            handler=self.pipeline.handle,
            queue_size=config.queue_size,
        )

    @property
    def address(self) -> tuple[str, int]:
        return self.listener.address

    def open(self) -> None:
        """Bind the listening socket without starting to accept."""
        self.listener.open()

    def run(self) -> None:
        """Start the server and block until it is shut down."""
        self._setup_logging()
        self.open()
        self.pool.start()

        host, port = self.address
        logger.info(
            f"Serving {self.config.root_directory} on {host}:{port} "
            f"with {self.config.worker_count} workers"
        )

        try:
            self.listener.accept_loop(self.pool)
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Stop accepting; run() returns once in-flight work has drained."""
        self.listener.shutdown()

    def _shutdown(self) -> None:
        logger.info("Shutting down server...")
        self.pool.shutdown(wait=True, timeout=self.config.shutdown_timeout)
        logger.info("Server stopped")

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserver").setLevel(level)
