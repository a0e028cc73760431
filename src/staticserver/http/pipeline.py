"""
=============================================================================
PROTOCOL PIPELINE
=============================================================================

Runs one request/response cycle on one connection. This is the function
every worker calls for every work item.

=============================================================================
STAGES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    One pass, no retries                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ReadRequest          conn.read_request_line()                      │
    │        │                                                             │
    │        ▼                                                             │
    │   ParseRequestLine     parse_request_line()  → HttpRequestLine       │
    │        │                                                             │
    │        ▼                                                             │
    │   ResolvePath          resolver.resolve(uri) → FOUND / NOT_FOUND     │
    │        │                                                             │
    │        ├── FOUND ────► status + Content-Type + Content-Length + file │
    │        │                                                             │
    │        └── NOT_FOUND ► status + Content-Length: 0                    │
    │                │                                                     │
    │                ▼                                                     │
    │   Write                conn.send(response bytes)   (single sendall)  │
    │        │                                                             │
    │        ▼                                                             │
    │   Close                always, on every path                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FAILURES STAY ON THEIR CONNECTION
=============================================================================

Every failure inside the pipeline is scoped to the connection it happened
on:

    RequestError (bad line, too large, timeout, short read)  ─┐
    OSError (client reset, unreadable file, broken pipe)     ─┼─► log, close
                                                              ┘    return

The worker then picks up the next item. Because the response is built in
memory before the first byte is written, a failure can only ever produce
"no response", never half of one.

=============================================================================
"""

import logging
import os
import time
from typing import Optional

from ..config import ServerConfig
from ..core.connection import Connection, ConnectionState
from ..errors import RequestError, ShortReadError
from .access_log import log_request
from .mime_types import MimeRegistry, DEFAULT_REGISTRY
from .request import HttpRequestLine, parse_request_line
from .resolver import PathResolver, ResolutionResult
from .response import HTTPResponse, file_response, not_found, unsupported_type


logger = logging.getLogger(__name__)


class ProtocolPipeline:
    """
    Per-connection request handler.

    Holds only read-only collaborators (resolver, registry), so a single
    instance is shared by every worker thread.

    The resolver and the content-type registry are separate:
    resolution decides WHETHER a file is served, the registry decides
    WHAT Content-Type it gets. When they disagree (a resolver that
    whitelists an extension the registry has no type for) the response
    falls back to application/octet-stream with an empty body.
    """

    def __init__(
        self,
        config: ServerConfig,
        resolver: Optional[PathResolver] = None,
        registry: MimeRegistry = DEFAULT_REGISTRY,
    ):
        self.config = config
        self.registry = registry
        self.resolver = resolver or PathResolver(config.root_directory, registry)

    def handle(self, conn: Connection) -> None:
        """
        Serve exactly one request on conn, then close it.

        Never raises for request-level or I/O failures; those are logged
        and end with the connection closed.
        """
        started_at = time.monotonic()

        with conn:
            try:
                raw_line = conn.read_request_line()

                conn.state = ConnectionState.PROCESSING
                request = parse_request_line(raw_line)
                resolution = self.resolver.resolve(request.uri)
                response = self.build_response(request, resolution)

                conn.send(response.to_bytes())

                log_request(
                    connection_id=conn.id,
                    client_ip=conn.client_ip,
                    request_line=str(request),
                    status_code=int(response.status),
                    content_length=len(response.body),
                    started_at=started_at,
                )

            except RequestError as e:
                logger.warning(f"[{conn.id}] Request aborted ({e.reason}): {e}")

            except OSError as e:
                logger.warning(f"[{conn.id}] I/O error, closing connection: {e}")

    def build_response(
        self,
        request: HttpRequestLine,
        resolution: ResolutionResult,
    ) -> HTTPResponse:
        """
        Turn a resolution into a complete response.

        Raises:
            ShortReadError: The file returned fewer bytes than its size.
            OSError: The file could not be opened or read.
        """
        if not resolution.found:
            return not_found(request.version)

        # Second, independent lookup: this one only picks the header value
        content_type = self.registry.content_type_for(resolution.absolute_path)
        if content_type is None:
            logger.warning(
                f"No content type for resolved file {resolution.absolute_path!r}, "
                f"sending empty octet-stream"
            )
            return unsupported_type(request.version)

        content = read_file(resolution.absolute_path)
        return file_response(request.version, content_type, content)


def read_file(path: str) -> bytes:
    """
    Read a whole file in one pass.

    The size is taken from the open file descriptor before reading, and the
    read must return exactly that many bytes.

    Raises:
        ShortReadError: Fewer bytes came back than the size reported
                        (e.g. the file was truncated while we read it).
    """
    with open(path, "rb") as f:
        expected = os.fstat(f.fileno()).st_size
        content = f.read(expected)

    if len(content) != expected:
        raise ShortReadError(
            f"Read {len(content)} of {expected} bytes from {path!r}"
        )
    return content
