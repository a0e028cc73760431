"""
=============================================================================
HTTP REQUEST LINE PARSING
=============================================================================

Only the first line of a request is ever looked at. Headers and bodies are
left unread on the socket and discarded when the connection closes.

=============================================================================
REQUEST LINE FORMAT (RFC 7230)
=============================================================================

    METHOD SP REQUEST-URI SP HTTP-VERSION CRLF

    Example: "GET /index.html HTTP/1.1"
              ─┬─ ─────┬───── ────┬───
               │       │          │
             Method   URI      Version

The line is split on runs of whitespace. Anything after the third token is
ignored. Fewer than three tokens is a BadRequestError: the connection is
closed without processing instead of failing somewhere downstream.

The version token is echoed back verbatim in the status line, so a client
that sends HTTP/1.0 gets "HTTP/1.0 200 OK".

=============================================================================
"""

from dataclasses import dataclass

from ..errors import BadRequestError


@dataclass(frozen=True)
class HttpRequestLine:
    """
    A parsed request line.

    Attributes:
        method: HTTP method as sent (e.g. "GET"). Not validated.
        uri: Request target as sent (e.g. "/index.html"). Not decoded.
        version: Protocol version as sent (e.g. "HTTP/1.1").
    """

    method: str
    uri: str
    version: str

    def __str__(self) -> str:
        return f"{self.method} {self.uri} {self.version}"


def parse_request_line(line: bytes) -> HttpRequestLine:
    """
    Parse raw request line bytes into an HttpRequestLine.

    Args:
        line: The first line of the request, with or without its line
              ending. Decoded as latin-1 so every byte maps to a character.

    Returns:
        The parsed request line.

    Raises:
        BadRequestError: If the line does not hold method, URI and version.

    Examples:
        >>> parse_request_line(b"GET /index.html HTTP/1.1\\r\\n")
        HttpRequestLine(method='GET', uri='/index.html', version='HTTP/1.1')
    """
    text = line.decode("latin-1")
    tokens = text.split()

    if len(tokens) < 3:
        raise BadRequestError(f"Malformed request line: {text.strip()!r}")

    method, uri, version = tokens[:3]
    return HttpRequestLine(method=method, uri=uri, version=version)
