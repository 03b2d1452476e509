"""
=============================================================================
MINICAT - Minimal HTTP/1.1 Request Processor
=============================================================================

Reads one request per connection, routes it by method and path, and
writes back a well-formed HTTP/1.1 response.

=============================================================================
PROJECT STRUCTURE
=============================================================================

    minicat/
    ├── __init__.py          # Package exports (this file)
    ├── __main__.py          # CLI entry point (python -m minicat)
    ├── app.py               # create_app(): routes, handlers, server
    ├── config.py            # ServerConfig dataclass
    ├── server.py            # HTTPServer: accept loop + workers + pipeline
    │
    ├── core/                # Networking and concurrency
    │   ├── socket_server.py # TCP listen/accept loop
    │   ├── connection.py    # One client socket as buffered streams
    │   ├── thread_pool.py   # Worker threads
    │   └── processor.py     # parse → dispatch → serialize → write
    │
    ├── http/                # HTTP protocol
    │   ├── request.py       # Request parser and body reader
    │   ├── response.py      # Response model and serializer
    │   ├── router.py        # Route table and dispatcher
    │   ├── status_codes.py  # Status codes and reason phrases
    │   └── mime_types.py    # Content-Type lookup
    │
    ├── handlers/            # Request handlers
    │   ├── home.py          # GET /
    │   ├── account.py       # GET /login, POST /register
    │   └── static.py        # Static file fallback
    │
    ├── db/
    │   └── users.py         # In-memory user store
    │
    └── static/              # Bundled pages

=============================================================================
QUICK START
=============================================================================

    from minicat import create_app, ServerConfig

    app = create_app(ServerConfig(port=8080))
    app.run()

Or from the shell:

    python -m minicat --port 8080

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer
from .app import create_app

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
