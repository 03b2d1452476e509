"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to MIME types for the Content-Type header.

The processor derives a content type for EVERY request, not only for
static files: the request path decides what kind of page the client is
asking for.

    ┌────────────────────────────────────────────────────────────────────┐
    │                  PATH → CONTENT-TYPE                               │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   /css/styles.css   →  .css   →  text/css                          │
    │   /js/scripts.js    →  .js    →  text/javascript                   │
    │   /index.html       →  .html  →  text/html                         │
    │   /login            →  (none) →  text/html   ← pages have no ext   │
    │   /                 →  (none) →  text/html                         │
    │   /archive.xyz      →  .xyz   →  application/octet-stream          │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

Every Content-Type this server writes carries a charset parameter:

    text/html;charset=utf-8

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".md": "text/markdown",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Other
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".wasm": "application/wasm",
    ".map": "application/json",
}

# Extensionless paths are pages ("/", "/login", "/register")
PAGE_MIME_TYPE = "text/html"

DEFAULT_MIME_TYPE = "application/octet-stream"

DEFAULT_CHARSET = "utf-8"


def get_extension(path: str) -> str:
    """
    Return the lowercase extension of a URL path, with the dot.

        >>> get_extension("/css/Styles.CSS")
        '.css'
        >>> get_extension("/login")
        ''
    """
    return PurePosixPath(path).suffix.lower()


def get_mime_type(path: str, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a URL path based on its extension.

    Args:
        path: URL path or file name.
        default: MIME type for unknown extensions
                 (application/octet-stream if not given).

    Returns:
        The MIME type string, without parameters.
    """
    extension = get_extension(path)
    if not extension:
        return PAGE_MIME_TYPE
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def with_charset(mime_type: str, charset: str = DEFAULT_CHARSET) -> str:
    """
    Append a charset parameter unless one is already present.

        >>> with_charset("text/css")
        'text/css;charset=utf-8'
        >>> with_charset("text/html; charset=iso-8859-1")
        'text/html; charset=iso-8859-1'
    """
    if "charset=" in mime_type.lower():
        return mime_type
    return f"{mime_type};charset={charset}"
