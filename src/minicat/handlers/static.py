"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files from a fixed assets directory. This is the fallback for
every request the route table does not know about.

=============================================================================
FLOW
=============================================================================

    Request: GET /css/styles.css
                 │
                 ▼
    request.header.file_path   "/css/styles.css"   ("/login" → "/login.html")
                 │
                 ▼
    StaticAssets.resolve()
        1. join onto root_dir and resolve() (normalizes "..", symlinks)
        2. still inside root_dir?          no  → ResourceNotFound
        3. is it a regular file?           no  → ResourceNotFound
        4. open / read / close             err → ResourceNotFound
                 │
                 ▼
    200 OK, Content-Type from extension, body = file bytes

=============================================================================
LENIENT FAILURE
=============================================================================

A missing or unreadable file does NOT produce a 404. The handler logs
the failure and answers 200 with an EMPTY body. Clients of this server
depend on that, so it stays.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..http.request import Request
from ..http.response import HTTPResponse, ResponseBuilder


logger = logging.getLogger(__name__)


class ResourceNotFound(Exception):
    """Raised when a static path cannot be resolved to a readable file."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class StaticAssets:
    """
    Read-only view of the assets directory.

    All paths are URL paths ("/login.html"); they are never allowed to
    escape root_dir.
    """

    def __init__(self, root_dir: Union[str, Path]):
        # Resolve once so the containment check compares real paths
        self.root_dir = Path(root_dir).resolve()

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def resolve(self, path: str) -> bytes:
        """
        Return the full contents of the file at a URL path.

        Raises:
            ResourceNotFound: outside the root, not a file, or unreadable.
        """
        try:
            full_path = (self.root_dir / path.lstrip("/")).resolve()
        except (OSError, ValueError) as e:
            # e.g. embedded NUL bytes
            raise ResourceNotFound(path, str(e)) from e

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            raise ResourceNotFound(path, "outside static root") from None

        try:
            # is_file() can raise too, e.g. ENAMETOOLONG
            if not full_path.is_file():
                raise ResourceNotFound(path, "no such file")

            # Closed on every exit path, including a failing read()
            with open(full_path, "rb") as f:
                return f.read()
        except OSError as e:
            raise ResourceNotFound(path, str(e)) from e

    def read_or_empty(self, path: str) -> bytes:
        """resolve(), but log the failure and return b"" instead of raising."""
        try:
            return self.resolve(path)
        except ResourceNotFound as e:
            logger.error(f"Failed to read static resource {e}")
            return b""


class StaticFileHandler:
    """
    Fallback handler: serve request.header.file_path from the assets.

    Usage:
        static = StaticFileHandler(StaticAssets("/srv/minicat/static"))
        dispatcher = Dispatcher(routes.build(), fallback=static.handle)
    """

    def __init__(self, assets: StaticAssets):
        self.assets = assets

    def handle(self, request: Request) -> HTTPResponse:
        header = request.header
        logger.info(f"path {header.path}")

        content = self.assets.read_or_empty(header.file_path)

        return (ResponseBuilder()
            .content_type(header.content_type)
            .body(content)
            .build())

    __call__ = handle
