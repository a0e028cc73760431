"""
=============================================================================
MIME TYPE REGISTRY
=============================================================================

Maps file extensions to the Content-Type sent for them. The table doubles
as the WHITELIST of servable files: an extension that is not listed here is
never served, even if the file exists.

    ┌────────────────────────────────────────────────────────────────────┐
    │                    SERVED TYPES                                    │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   .html  → text/html                                               │
    │   .jpg   → image/jpeg                                              │
    │   .css   → text/css                                                │
    │   .js    → text/javascript                                         │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCHING RULES
=============================================================================

1. The extension is everything from the LAST dot of the path, dot included:

       /srv/www/app.min.js   → ".js"
       /srv/www/README       → None        (no dot, never served)

2. Matching is exact. ".HTML" and ".htm" are NOT ".html".

3. Unknown extensions have no content type. Callers that still need a
   header value use DEFAULT_MIME_TYPE.

=============================================================================
THREAD SAFETY
=============================================================================

The registry is built once at import time and wrapped in a read-only
mapping proxy. Worker threads read it concurrently with no locking.

=============================================================================
"""

from types import MappingProxyType
from typing import Mapping, Optional


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================

MIME_TYPES = {
    ".html": "text/html",
    ".jpg": "image/jpeg",
    ".css": "text/css",
    ".js": "text/javascript",
}

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def extension_of(path: str) -> Optional[str]:
    """
    Get the extension of a path: the text from its last dot onwards.

    Examples:
        >>> extension_of("/var/www/index.html")
        '.html'

        >>> extension_of("/var/www/archive.tar.gz")
        '.gz'

        >>> extension_of("/var/www/Makefile") is None
        True
    """
    dot = path.rfind(".")
    if dot == -1:
        return None
    return path[dot:]


class MimeRegistry:
    """
    Immutable extension → content type lookup.

    Usage:
        registry = MimeRegistry({".html": "text/html"})
        registry.lookup(".html")       # 'text/html'
        registry.supports(".png")      # False
    """

    def __init__(self, types: Mapping[str, str]):
        self._types = MappingProxyType(dict(types))

    def lookup(self, extension: Optional[str]) -> Optional[str]:
        """Get the content type for an extension, or None if not listed."""
        if extension is None:
            return None
        return self._types.get(extension)

    def supports(self, extension: Optional[str]) -> bool:
        """Check whether files with this extension may be served."""
        return self.lookup(extension) is not None

    def content_type_for(self, path: str) -> Optional[str]:
        """Get the content type for a path, based on its last extension."""
        return self.lookup(extension_of(path))

    @property
    def extensions(self) -> tuple[str, ...]:
        return tuple(self._types)

    def __contains__(self, extension: object) -> bool:
        return extension in self._types

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return f"MimeRegistry({dict(self._types)!r})"


DEFAULT_REGISTRY = MimeRegistry(MIME_TYPES)
