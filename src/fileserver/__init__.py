"""
=============================================================================
FILESERVER
=============================================================================

A minimal multi-threaded HTTP/1.1 static file server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ fileserver/                                                          │
    │ ├── config.py          ServerConfig: defaults, properties, env       │
    │ ├── server.py          FileServer: lifecycle and wiring              │
    │ ├── core/              sockets, connections, thread pool             │
    │ ├── http/              request parser, response assembler            │
    │ ├── handlers/          per-connection and per-method handlers        │
    │ ├── resources/         static file store and cache                   │
    │ └── static/            bundled index, 404 and error pages            │
    └─────────────────────────────────────────────────────────────────────┘

What it does:

    - GET (and HEAD) of files under a static root
    - MIME type by file extension
    - 404 page, then 500 page, when a file is missing
    - One request per connection; malformed requests are dropped unanswered

Quick start:

    python -m fileserver --port 8000 --static ./public

=============================================================================
"""

__version__ = "1.0.0"

from .server import FileServer
from .config import ServerConfig

__all__ = ["FileServer", "ServerConfig", "__version__"]
