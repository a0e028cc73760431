"""
=============================================================================
PATH RESOLUTION
=============================================================================

Maps a requested URI to a file on disk, or decides there is nothing to
serve.

    Request: GET /css/site.css HTTP/1.1
    Root:    /srv/www

    1. Concatenate literally      /srv/www + /css/site.css
                                  = /srv/www/css/site.css
    2. Extension (last dot)       .css
    3. Normalize + stay in root?  /srv/www/css/site.css  ✓
    4. Regular file on disk?      ✓
    5. Extension whitelisted?     ✓
                                  ──────────────────────
                                  FOUND /srv/www/css/site.css

Any "no" along the way yields NOT_FOUND. This is not an error: it is the
normal outcome that produces a 404 response.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The URI is appended to the root WITHOUT url-decoding, so a request like

    GET /../../etc/passwd.html HTTP/1.1

produces /srv/www/../../etc/passwd.html. Both paths are passed through
os.path.realpath (which collapses ".." and follows symlinks) and the
result must still live under the root:

    realpath(/srv/www/../../etc/passwd.html) = /etc/passwd.html
    /etc/passwd.html is not under /srv/www           → NOT_FOUND

Escapes are answered with the same 404 as a missing file, so a client
cannot probe which paths exist outside the web root.

=============================================================================
BYTES, NOT CHARACTERS
=============================================================================

The request line is decoded as latin-1, so each character of the URI
stands for exactly one byte the client sent. The join happens on bytes:

    os.fsencode(root) + uri.encode("latin-1")

and the result goes back through os.fsdecode, whose surrogateescape keeps
every byte intact when the path is handed to the filesystem. A request for
/caf\\xc3\\xa9.html finds the file the OS stores under those same bytes.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum

from .mime_types import MimeRegistry, DEFAULT_REGISTRY, extension_of


logger = logging.getLogger(__name__)


class ResolutionStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ResolutionResult:
    """
    Outcome of resolving one URI.

    Attributes:
        status: FOUND or NOT_FOUND.
        absolute_path: The concatenated path that was checked. For FOUND
                       results this is the file to serve.
    """

    status: ResolutionStatus
    absolute_path: str

    @property
    def found(self) -> bool:
        return self.status is ResolutionStatus.FOUND


class PathResolver:
    """
    Resolves request URIs against a fixed web root.

    Stateless apart from the root and registry it was built with, so one
    instance is shared by every worker.
    """

    def __init__(self, root_directory: str, registry: MimeRegistry = DEFAULT_REGISTRY):
        """
        Args:
            root_directory: Web root, as configured. Used verbatim for the
                            concatenation step.
            registry: Whitelist of servable extensions.
        """
        self.root_directory = root_directory
        self.registry = registry

        # Canonical root for the containment check
        self._real_root = os.path.realpath(root_directory)

    def resolve(self, uri: str) -> ResolutionResult:
        """
        Resolve a URI to a ResolutionResult.

        Args:
            uri: The URI token from the request line, e.g. "/index.html".
                 One character per wire byte (latin-1).

        Returns:
            FOUND with the path to serve, or NOT_FOUND.
        """
        full_path = os.fsdecode(os.fsencode(self.root_directory) + uri.encode("latin-1"))
        not_found = ResolutionResult(ResolutionStatus.NOT_FOUND, full_path)

        # Only the last dot counts; no dot means nothing to serve
        if not self.registry.supports(extension_of(full_path)):
            return not_found

        if not self._is_inside_root(full_path):
            logger.warning(f"Path escapes web root, refusing: {uri!r}")
            return not_found

        if not os.path.isfile(full_path):
            return not_found

        return ResolutionResult(ResolutionStatus.FOUND, full_path)

    def _is_inside_root(self, path: str) -> bool:
        try:
            real_path = os.path.realpath(path)
            return os.path.commonpath([self._real_root, real_path]) == self._real_root
        except ValueError:
            # Embedded NUL byte, or paths on different drives
            return False
