"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the operations a request needs:
read the request line, send a response, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

A single recv() may return half a request line, or the line plus headers:

    Client sends:     "GET /index.html HTTP/1.1\r\nHost: x\r\n\r\n"

    recv() #1   →     "GET /inde"
    recv() #2   →     "x.html HTTP/1.1\r\nHost: x\r\n\r\n"

So we keep reading into a buffer until a line ending shows up, and give up
with RequestTooLargeError once the buffer passes max_request_line bytes.
Whatever follows the first line is never looked at.

=============================================================================
DEADLINES
=============================================================================

Every connection carries an absolute deadline fixed when it was accepted:

    accept() ──► queued ──► worker picks up ──► read ──► write ──► close
    │                                                              │
    └──────────────── request_timeout (e.g. 10s) ──────────────────┘

Before each blocking socket call the remaining time is installed as the
socket timeout. Once it runs out the call raises RequestTimeoutError and
the worker moves on, whichever stage the request was in.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
     │         │             │            │           ▲
     └─────────┴─────────────┴────────────┴───────────┘
                       (any failure)

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum

from ..errors import (
    IncompleteRequestError,
    RequestTimeoutError,
    RequestTooLargeError,
)


logger = logging.getLogger(__name__)

# Upper bound on how long close() waits for the peer to finish sending
DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and debugging."""
    NEW = "new"                # Accepted, waiting in the queue
    READING = "reading"        # Reading the request line
    PROCESSING = "processing"  # Parsing and resolving
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection, owned by exactly one worker at a time.

    Attributes:
        socket: The client socket returned by accept().
        address: Client's (ip, port) tuple.
        deadline: time.monotonic() value after which the request is dropped.
        id: Short identifier used to correlate log lines.
        state: Current lifecycle state.
    """

    socket: socket.socket
    address: tuple[str, int]
    deadline: float
    buffer_size: int = 2048
    max_request_line: int = 8192

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)

    _buffer: bytes = field(default=b"", repr=False)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def remaining(self) -> float:
        """Seconds left before the deadline (negative once expired)."""
        return self.deadline - time.monotonic()

    @property
    def expired(self) -> bool:
        return self.remaining <= 0

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request_line(self) -> bytes:
        """
        Read bytes until the first line ending and return that line.

        The returned line has its trailing CRLF (or bare LF) removed.

        Raises:
            RequestTooLargeError: No line ending within max_request_line bytes.
            IncompleteRequestError: Peer closed before a full line arrived.
            RequestTimeoutError: The deadline expired while waiting.
        """
        self.state = ConnectionState.READING

        while True:
            end = self._buffer.find(b"\n")
            if end != -1:
                if end > self.max_request_line:
                    break
                return self._buffer[:end].rstrip(b"\r")

            if len(self._buffer) > self.max_request_line:
                break

            chunk = self._recv()
            if not chunk:
                raise IncompleteRequestError(
                    f"Connection closed after {len(self._buffer)} bytes, "
                    f"before end of request line"
                )
            self._buffer += chunk

        raise RequestTooLargeError(
            f"Request line exceeds {self.max_request_line} bytes"
        )

    def _recv(self) -> bytes:
        self._apply_deadline()
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise RequestTimeoutError("Timed out reading request") from None
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> None:
        """
        Send all of data to the client.

        sendall() either writes every byte or raises; there is no partial
        success to report.

        Raises:
            RequestTimeoutError: The deadline expired mid-write.
            OSError: The peer went away.
        """
        self.state = ConnectionState.WRITING
        self._apply_deadline()
        try:
            self.socket.sendall(data)
        except socket.timeout:
            raise RequestTimeoutError("Timed out writing response") from None

    def _apply_deadline(self) -> None:
        remaining = self.remaining
        if remaining <= 0:
            raise RequestTimeoutError("Request deadline expired")
        self.socket.settimeout(remaining)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection. Safe to call more than once.

        Sequence:

        1. shutdown(SHUT_WR): send FIN, the client sees end-of-response
        2. Drain: read and discard what the client still sends (headers we
           never parsed). Closing with unread data makes the kernel send
           RST, which can destroy the response before the client reads it.
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            drain_until = time.monotonic() + DRAIN_TIMEOUT
            self.socket.settimeout(DRAIN_TIMEOUT)
            while time.monotonic() < drain_until and self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self) -> "Connection":
        """
        Use with 'with' so the connection is closed on every exit path:

            with conn:
                line = conn.read_request_line()
                conn.send(response)
            # closed here, even if the body raised
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
