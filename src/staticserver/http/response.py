"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

The server only ever produces three response shapes. They are byte-exact
templates: no Date, no Server, no Connection header.

    FOUND (file served)
    ┌─────────────────────────────────────────────────────────────────────┐
    │  <version> 200 OK\r\n                                               │
    │  Content-Type: <type>\r\n                                           │
    │  Content-Length: <n>\r\n                                            │
    │  \r\n                                                               │
    │  <n bytes of file content>                                          │
    └─────────────────────────────────────────────────────────────────────┘

    NOT FOUND
    ┌─────────────────────────────────────────────────────────────────────┐
    │  <version> 404 Not Found\r\n                                        │
    │  Content-Length: 0\r\n                                              │
    │  \r\n                                                               │
    └─────────────────────────────────────────────────────────────────────┘

    UNSUPPORTED TYPE (resolved, but no content type on record)
    ┌─────────────────────────────────────────────────────────────────────┐
    │  <version> 200 OK\r\n                                               │
    │  Content-Type: application/octet-stream\r\n                         │
    │  Content-Length: 0\r\n                                              │
    │  \r\n                                                               │
    └─────────────────────────────────────────────────────────────────────┘

A response is serialized to bytes in one piece and written with a single
sendall(). If anything fails before that point, nothing reaches the client.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import IntEnum

from .mime_types import DEFAULT_MIME_TYPE


class HTTPStatus(IntEnum):
    """
    Status codes this server emits.

        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    NOT_FOUND = 404

    @property
    def phrase(self) -> str:
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
}


@dataclass
class HTTPResponse:
    """
    A response ready to be written to a connection.

    Headers are kept as an ordered list of (name, value) pairs so the
    serialized form matches the templates above exactly.
    """

    status: HTTPStatus
    version: str = "HTTP/1.1"
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def get_header(self, name: str) -> str | None:
        for header_name, value in self.headers:
            if header_name.lower() == name.lower():
                return value
        return None

    def to_bytes(self) -> bytes:
        """
        Serialize status line, headers, blank line and body.

            HTTP/1.1 200 OK\\r\\n
            Content-Type: text/html\\r\\n
            Content-Length: 12\\r\\n
            \\r\\n
            hello world!
        """
        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in self.headers)
        head = "\r\n".join(lines) + "\r\n\r\n"
        # latin-1 keeps any byte the client sent in the version token intact
        return head.encode("latin-1") + self.body


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def file_response(version: str, content_type: str, content: bytes) -> HTTPResponse:
    """200 response carrying a file's full content."""
    return HTTPResponse(
        status=HTTPStatus.OK,
        version=version,
        headers=[
            ("Content-Type", content_type),
            ("Content-Length", str(len(content))),
        ],
        body=content,
    )


def not_found(version: str) -> HTTPResponse:
    """404 response with an empty body."""
    return HTTPResponse(
        status=HTTPStatus.NOT_FOUND,
        version=version,
        headers=[("Content-Length", "0")],
    )


def unsupported_type(version: str) -> HTTPResponse:
    """200 response for a resolved file whose type has no registry entry."""
    return HTTPResponse(
        status=HTTPStatus.OK,
        version=version,
        headers=[
            ("Content-Type", DEFAULT_MIME_TYPE),
            ("Content-Length", "0"),
        ],
    )
