"""
HTTP layer: request line parsing, path resolution, response templates and
the per-connection pipeline that strings them together.
"""

from .mime_types import MimeRegistry, DEFAULT_REGISTRY, DEFAULT_MIME_TYPE, extension_of
from .request import HttpRequestLine, parse_request_line
from .resolver import PathResolver, ResolutionResult, ResolutionStatus
from .response import HTTPResponse, HTTPStatus, file_response, not_found, unsupported_type
from .pipeline import ProtocolPipeline, read_file

__all__ = [
    "MimeRegistry",
    "DEFAULT_REGISTRY",
    "DEFAULT_MIME_TYPE",
    "extension_of",
    "HttpRequestLine",
    "parse_request_line",
    "PathResolver",
    "ResolutionResult",
    "ResolutionStatus",
    "HTTPResponse",
    "HTTPStatus",
    "file_response",
    "not_found",
    "unsupported_type",
    "ProtocolPipeline",
    "read_file",
]
