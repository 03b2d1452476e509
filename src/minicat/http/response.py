"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Holds what a handler produced and serializes it to HTTP/1.1 wire format.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ STATUS LINE ──────────────────────────────────────────────────┐ │
    │  │    HTTP/1.1 302 Found\r\n                                       │ │
    │  │    ───┬──── ─┬─ ──┬──                                          │ │
    │  │    Version  Code Reason                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS (insertion order) ────────────────────────────────────┐ │
    │  │    Content-Type: text/html;charset=utf-8\r\n                    │ │
    │  │    Location: index.html\r\n                                     │ │
    │  │    Content-Length: 3796\r\n        ← always BYTE length         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BLANK LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    <!DOCTYPE html> ...                                          │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
DETERMINISM
=============================================================================

The same HTTPResponse value always serializes to the same bytes:

    - headers are written in the order they were set
    - no Date or other time-dependent header is added
    - Content-Length is recomputed from the encoded body, so "héllo"
      is 6 bytes, not 5 characters

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .mime_types import DEFAULT_CHARSET, PAGE_MIME_TYPE, with_charset
from .status_codes import HTTPStatus, reason_phrase


PROTOCOL = "HTTP/1.1"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Built by a handler, consumed exactly once by to_bytes().

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          to_bytes()              Connection
        HTTPResponse    ─────►   serializes    ─────►    writes bytes
            │                       │                        │
        HTTPResponse(            b"HTTP/1.1 302 Found\r\n   wfile.write(...)
          status=302,              Location: ...\r\n        wfile.flush()
          headers={...},           \r\n
          body=b"...")             <html>..."

    =========================================================================
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: Union[bytes, str] = b""
    reason: Optional[str] = None

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        reason = self.reason if self.reason is not None else reason_phrase(self.status)
        return f"{PROTOCOL} {int(self.status)} {reason}"

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode(DEFAULT_CHARSET)
        return self.body

    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize the response for writing to the socket.

        =====================================================================
        HEADER FIX-UPS
        =====================================================================

            Content-Type    missing      → text/html;charset=utf-8
                            no charset   → ";charset=utf-8" appended
            Content-Length  missing      → appended with byte length
                            present      → value replaced in place

        The response object itself is not modified.

        =====================================================================
        """
        body = self.body_bytes
        lines = [self.status_line]

        has_content_type = False
        has_content_length = False

        for name, value in self.headers.items():
            lowered = name.lower()
            if lowered == "content-type":
                has_content_type = True
                value = with_charset(value)
            elif lowered == "content-length":
                has_content_length = True
                value = str(len(body))
            lines.append(f"{name}: {value}")

        if not has_content_type:
            lines.append(f"Content-Type: {with_charset(PAGE_MIME_TYPE)}")
        if not has_content_length:
            lines.append(f"Content-Length: {len(body)}")

        # Empty line separates headers from body
        lines.append("")
        head = "\r\n".join(lines).encode(DEFAULT_CHARSET) + b"\r\n"
        return head + body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    ==========================================================================
    USAGE
    ==========================================================================

        response = (ResponseBuilder()
            .status(HTTPStatus.FOUND)
            .content_type("text/html")
            .header("Location", "index.html")
            .body(login_page)
            .build())

    ==========================================================================
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set Content-Type; a charset is added on serialization if missing."""
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the body. Strings are encoded as UTF-8."""
        if isinstance(body, str):
            body = body.encode(DEFAULT_CHARSET)
        self._body = body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        return self.content_type("text/plain").body(text)

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        return self.content_type(PAGE_MIME_TYPE).body(html)

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """
        302 Found (or 301 Moved Permanently) with a Location header.

        Does NOT clear the body: a handler may still attach one.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        return self.header("Location", location)

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        return self.build().to_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: str = PAGE_MIME_TYPE) -> HTTPResponse:
    """200 OK with the given body."""
    return ResponseBuilder().content_type(content_type).body(body).build()


def redirect(
    location: str,
    body: Union[str, bytes] = b"",
    content_type: str = PAGE_MIME_TYPE,
) -> HTTPResponse:
    """302 Found pointing at location, optionally carrying a body."""
    return (ResponseBuilder()
        .redirect(location)
        .content_type(content_type)
        .body(body)
        .build())
