"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the server can hit falls into one of three buckets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ERROR BUCKETS                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   FATAL (StartupError)                                               │
    │   └── socket(), setsockopt(), bind(), listen(), bad configuration    │
    │   └── Nothing can be served: log and exit non-zero                   │
    │                                                                      │
    │   RECOVERABLE (RequestError and subclasses)                          │
    │   └── Malformed request line, oversized request, client timeout,     │
    │       short file read                                                │
    │   └── Scoped to ONE connection: close it, log, keep serving          │
    │                                                                      │
    │   EXPECTED (not an exception at all)                                 │
    │   └── File missing, extension not whitelisted, path escapes root     │
    │   └── A normal NotFound resolution → 404 response                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Socket-level failures (OSError and its ConnectionError family) are not
wrapped: the pipeline catches them next to RequestError and treats them the
same way.

=============================================================================
"""


class ServerError(Exception):
    """Base class for all errors raised by staticserver."""


class StartupError(ServerError):
    """
    The server cannot start.

    Raised for socket creation, socket option, bind and listen failures and
    for invalid configuration. Callers are expected to log it and exit with
    a non-zero status.
    """


class PoolClosedError(ServerError):
    """Raised when work is submitted to a worker pool that is shutting down."""


class RequestError(ServerError):
    """
    A failure scoped to a single connection.

    Carries a short machine-friendly ``reason`` used in log lines:

        [a1b2c3d4] Request aborted (bad_request): Malformed request line: 'GET'
                                    ───────────
                                      reason
    """

    reason = "request_error"

    def __init__(self, message: str):
        super().__init__(message)


class BadRequestError(RequestError):
    """The request line could not be split into method, URI and version."""

    reason = "bad_request"


class RequestTooLargeError(RequestError):
    """No line terminator was seen within the configured request line limit."""

    reason = "too_large"


class IncompleteRequestError(RequestError):
    """The peer closed the connection before sending a full request line."""

    reason = "incomplete"


class RequestTimeoutError(RequestError):
    """The per-request deadline expired."""

    reason = "timeout"


class ShortReadError(RequestError):
    """Fewer bytes were read from a file than its size reported."""

    reason = "short_read"
