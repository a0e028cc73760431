"""
=============================================================================
ACCESS LOG
=============================================================================

One line per request that produced a response, in a shape close to the
Apache common log format:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [19/Oct/2026:10:55:36 +0000] "GET /a.css HTTP/1.1"    │
    │   200 1234 0.84ms                                                   │
    │ ───────────────────────────────────────────────────────────────────│
    │ IP          Timestamp            Request line    Status Size Time   │
    └─────────────────────────────────────────────────────────────────────┘

Access lines go to their own logger, "staticserver.access", so they can be
silenced or redirected without touching operational logs:

    logging.getLogger("staticserver.access").setLevel(logging.WARNING)

=============================================================================
"""

import logging
import time
from dataclasses import dataclass


logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    """Structured log entry for one request."""

    connection_id: str
    client_ip: str
    request_line: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.request_line}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_request(
    connection_id: str,
    client_ip: str,
    request_line: str,
    status_code: int,
    content_length: int,
    started_at: float,
) -> RequestLog:
    """
    Build and emit an access log entry.

    Args:
        started_at: time.monotonic() value taken when the worker picked up
                    the connection.

    Returns:
        The entry that was logged.
    """
    entry = RequestLog(
        connection_id=connection_id,
        client_ip=client_ip,
        request_line=request_line,
        status_code=status_code,
        content_length=content_length,
        duration_ms=(time.monotonic() - started_at) * 1000,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )
    logger.info(entry.to_text())
    return entry
