"""
=============================================================================
LISTENER
=============================================================================

Owns the listening socket and the single accept loop that feeds the
worker pool.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()      Create the TCP socket
    2. setsockopt()  SO_REUSEADDR: rebind right after a restart instead of
                     waiting out TIME_WAIT
    3. bind()        Reserve HOST:PORT (0.0.0.0 = every interface)
    4. listen()      Let the kernel queue up to `backlog` pending connections
    5. accept()      Take one connection off that queue (repeat forever)
    6. close()       Release the socket on shutdown

A failure in steps 1-4 is fatal: without a listening socket the process
has nothing to do. A failure in step 5 only costs that one connection;
it is logged and the loop carries on.

=============================================================================
CANCELLATION
=============================================================================

The accept loop watches a threading.Event instead of a bare "running"
flag, and accept() is given a short timeout so the event is checked
regularly:

    while not shutdown_event.is_set():
        try:
            accept()                 ← returns within accept_timeout
        except timeout:
            continue                 ← go check the event again

shutdown() only sets the event, so it is safe to call from a signal
handler, from another thread, or more than once.

=============================================================================
"""

import signal
import socket
import logging
import threading
import time
from typing import Optional

from ..config import ServerConfig
from ..errors import PoolClosedError, StartupError
from .connection import Connection
from .worker_pool import WorkerPool


logger = logging.getLogger(__name__)


def bind(config: ServerConfig) -> socket.socket:
    """
    Create a listening socket for config.

    Returns:
        A bound, listening socket.

    Raises:
        StartupError: socket creation, SO_REUSEADDR, bind or listen failed.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        raise StartupError(f"Cannot open socket: {e}") from e
    logger.info("Listening socket created")

    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    except OSError as e:
        sock.close()
        raise StartupError(f"Cannot set SO_REUSEADDR: {e}") from e

    try:
        sock.bind((config.host, config.port))
    except OSError as e:
        sock.close()
        raise StartupError(f"Cannot bind to {config.host}:{config.port}: {e}") from e

    port = sock.getsockname()[1]
    logger.info(f"Binding done, listening on port {port}")

    try:
        sock.listen(config.max_connections)
    except OSError as e:
        sock.close()
        raise StartupError(f"Cannot listen on socket: {e}") from e

    return sock


class Listener:
    """
    Accepts connections and hands them to a WorkerPool.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      Listener Internals                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    open()             bind() the socket (fatal on failure)           │
    │                                                                      │
    │    accept_loop(pool)  Main loop (blocks here!)                       │
    │        │                                                             │
    │        └──► until shutdown event:                                    │
    │                accept()          wait for a client                   │
    │                Connection()      wrap socket, stamp deadline         │
    │                pool.submit()     blocks while the queue is full      │
    │                                                                      │
    │    shutdown()         set the event; the loop exits within           │
    │                       accept_timeout and closes the socket           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> tuple[str, int]:
        """The bound (host, port). The port is the real one even if 0 was asked."""
        if self._socket is None:
            return (self.config.host, self.config.port)
        return self._socket.getsockname()[:2]

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    def open(self) -> None:
        """Bind the listening socket. Raises StartupError on failure."""
        if self._socket is None:
            self._socket = bind(self.config)
            self._socket.settimeout(self.config.accept_timeout)

    def accept_loop(self, pool: WorkerPool) -> None:
        """
        Accept connections until shutdown() is called.

        The listening socket is closed when this returns.
        """
        self.open()
        self._setup_signals()

        try:
            while not self._shutdown_event.is_set():
                try:
                    client_socket, client_address = self._socket.accept()
                except socket.timeout:
                    continue  # Re-check the shutdown event
                except OSError as e:
                    if self._shutdown_event.is_set():
                        break
                    logger.error(f"Accept error: {e}")
                    continue

                self._hand_off(pool, client_socket, client_address)
        finally:
            self._restore_signals()
            self._close()

    def _hand_off(self, pool: WorkerPool, client_socket: socket.socket, client_address):
        conn = Connection(
            socket=client_socket,
            address=client_address,
            deadline=time.monotonic() + self.config.request_timeout,
            buffer_size=self.config.buffer_size,
            max_request_line=self.config.max_request_line,
        )
        logger.debug(f"[{conn.id}] Accepted connection from {client_address[0]}:{client_address[1]}")

        try:
            # Blocks while the queue is full: back-pressure on accept()
            pool.submit(conn)
        except PoolClosedError:
            logger.warning(f"[{conn.id}] Worker pool closed, dropping connection")
            conn.close()

    def shutdown(self) -> None:
        """Ask the accept loop to stop. Idempotent."""
        if not self._shutdown_event.is_set():
            logger.info("Stopping listener...")
        self._shutdown_event.set()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown() has been called. False on timeout."""
        return self._shutdown_event.wait(timeout)

    def _close(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None
        logger.info("Listener stopped")

    # =========================================================================
    # SIGNALS
    # =========================================================================
    #
    # SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) start a clean
    # shutdown instead of killing the process mid-response. Python only
    # allows installing handlers from the main thread, so a listener
    # running on any other thread (tests) skips this.

    def _setup_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()
