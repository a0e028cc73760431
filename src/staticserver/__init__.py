"""
=============================================================================
STATICSERVER - Multi-threaded Static File Server on Raw Sockets
=============================================================================

Serves files from a web root over plain TCP, one request per connection:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Client ──TCP──► Listener ──► WorkerPool queue ──► Worker           │
    │                                                       │              │
    │                                     ProtocolPipeline ◄┘              │
    │                                       │                              │
    │                                       ├── parse request line         │
    │                                       ├── resolve against web root   │
    │                                       ├── 200 + file  /  404         │
    │                                       └── close                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserver)
    ├── server.py            # StaticFileServer orchestrator
    ├── config.py            # ServerConfig (frozen dataclass)
    ├── errors.py            # Exception hierarchy
    ├── core/
    │   ├── listener.py      # Listening socket + accept loop
    │   ├── connection.py    # Client connection wrapper
    │   └── worker_pool.py   # Fixed-size worker pool
    └── http/
        ├── request.py       # Request line parsing
        ├── resolver.py      # URI → file resolution
        ├── mime_types.py    # Extension whitelist / content types
        ├── response.py      # Response templates
        ├── pipeline.py      # One request/response cycle
        └── access_log.py    # Per-request access log lines

=============================================================================
QUICK START
=============================================================================

    python -m staticserver 8080 ./public

    from staticserver import StaticFileServer, ServerConfig

    server = StaticFileServer(ServerConfig(port=8080, root_directory="./public"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import StaticFileServer
from .config import ServerConfig

__all__ = ["StaticFileServer", "ServerConfig", "__version__"]
