"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads an HTTP/1.1 request from a connected stream and turns it into an
immutable Request object.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    GET /login?account=admin&password=password HTTP/1.1\r\n     │ │
    │  │    ─┬─ ───────────────────┬──────────────────  ───┬────        │ │
    │  │     │                     │                       │             │ │
    │  │   Method               Target                  Version         │ │
    │  │                           │                   (optional)        │ │
    │  │               ┌───────────┴────────────┐                       │ │
    │  │             Path                  Query String                  │ │
    │  │            /login        account=admin&password=password        │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Host: localhost:8080\r\n                                     │ │
    │  │    Content-Length: 38\r\n                                       │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BLANK LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n   (or just \n)                                          │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (non-GET only, exactly Content-Length bytes) ───────────┐ │
    │  │    account=foo&password=bar&email=x@y.com                       │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TWO READING PHASES
=============================================================================

The parser never sees "the whole request" as one buffer. It reads from a
buffered binary stream (socket.makefile("rb") in production, io.BytesIO in
tests) in two phases:

    1. read_header(): readline() until an empty line or end-of-stream.
    2. read_body():   read(Content-Length) for methods that carry a body.
                      GET skips this phase ENTIRELY, even if the client
                      sent a Content-Length header.

Both phases block until data arrives. A client that stops sending just
blocks its own worker until the socket timeout or the peer closes.

=============================================================================
WHAT COUNTS AS MALFORMED
=============================================================================

    ┌──────────────────────────────────────┬──────────────────────────────┐
    │  Input                               │  Result                      │
    ├──────────────────────────────────────┼──────────────────────────────┤
    │  stream closed before any line       │  MalformedRequest            │
    │  "GET"  (one token)                  │  MalformedRequest            │
    │  "BREW /pot HTTP/1.1"                │  MalformedRequest            │
    │  Content-Length: abc / -1            │  MalformedRequest            │
    │  body shorter than Content-Length    │  MalformedRequest            │
    │  header line without a colon         │  skipped (lenient)           │
    │  "GET /path"  (no version)           │  accepted, HTTP/1.1 assumed  │
    └──────────────────────────────────────┴──────────────────────────────┘

MalformedRequest is raised before any response byte exists, so the
connection layer can close the socket without writing anything.

=============================================================================
"""

import io
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import BinaryIO, Mapping, Optional
from urllib.parse import unquote_plus

from .mime_types import get_extension, get_mime_type


class MalformedRequest(Exception):
    """
    Raised when the bytes on the wire are not a request we can process.

    Carries the offending fragment (if any) so the connection layer can
    log something useful before closing the socket.
    """

    def __init__(self, message: str, fragment: Optional[str] = None):
        super().__init__(message)
        self.fragment = fragment


class HttpMethod(Enum):
    """Request methods recognized on the request line."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"

    @classmethod
    def from_token(cls, token: str) -> "HttpMethod":
        """
        Look up a method by its request-line token.

        Method names are case-sensitive (RFC 7230 section 3.1.1), so
        "get" is rejected just like "BREW".
        """
        try:
            return cls(token)
        except ValueError:
            raise MalformedRequest(f"Unknown method: {token}", fragment=token) from None

    @property
    def has_body(self) -> bool:
        """Whether the body reader runs for this method."""
        return self is not HttpMethod.GET


# =============================================================================
# QUERY / FORM DECODING
# =============================================================================

def parse_query_string(query: str) -> dict[str, str]:
    """
    Split a query string on "&" and then on the first "=".

    Values are taken verbatim. A key without "=" maps to "", empty
    segments are skipped, and the last duplicate key wins.

        >>> parse_query_string("account=admin&password=a=b&flag&account=root")
        {'account': 'root', 'password': 'a=b', 'flag': ''}
    """
    params: dict[str, str] = {}
    for pair in query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        params[key] = value
    return params


def parse_form(text: str) -> dict[str, str]:
    """
    Decode an application/x-www-form-urlencoded body.

    Same splitting rules as the query string, but "+" and %XX escapes
    are decoded, since browsers always encode form submissions:

        >>> parse_form("email=x%40y.com&name=Jane+Doe")
        {'email': 'x@y.com', 'name': 'Jane Doe'}
    """
    return {
        unquote_plus(key): unquote_plus(value)
        for key, value in parse_query_string(text).items()
    }


# =============================================================================
# REQUEST MODEL
# =============================================================================

@dataclass(frozen=True)
class RequestHeader:
    """
    Everything before the blank line, parsed.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:   HttpMethod from the request line
        path:     target WITHOUT the query string ("/login")
        query:    {"account": "admin", "password": "password"}
        headers:  names exactly as the client sent them
                  {"Host": "localhost", "Content-Length": "38"}
        version:  "HTTP/1.1" unless the request line said otherwise

    The mappings are wrapped in read-only proxies after construction, so
    a handler cannot change what another stage of the pipeline sees.

    =========================================================================
    DERIVED VALUES
    =========================================================================

        path            file_path        content_type
        ──────────────  ───────────────  ────────────
        /               /index.html      text/html
        /login          /login.html      text/html
        /css/a.css      /css/a.css       text/css

    =========================================================================
    """

    method: HttpMethod
    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    version: str = "HTTP/1.1"

    def __post_init__(self):
        object.__setattr__(self, "query", MappingProxyType(dict(self.query)))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def file_path(self) -> str:
        """
        The static-asset path this request maps to.

        Pages are addressed without an extension ("/login") but live on
        disk as HTML files ("login.html"); the root maps to index.html.
        """
        if self.path in ("", "/"):
            return "/index.html"
        if not get_extension(self.path):
            return self.path.rstrip("/") + ".html"
        return self.path

    @property
    def extension(self) -> str:
        return get_extension(self.file_path)

    @property
    def content_type(self) -> str:
        """MIME type derived from file_path (no charset parameter)."""
        return get_mime_type(self.file_path)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a header value.

        Exact-case match first; falls back to a case-insensitive scan so
        "content-length" from a sloppy client is still found.
        """
        if name in self.headers:
            return self.headers[name]
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query.get(name, default)


@dataclass(frozen=True)
class RequestBody:
    """Decoded form fields of the request body (empty when absent)."""

    fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @classmethod
    def empty(cls) -> "RequestBody":
        return cls()

    @classmethod
    def from_text(cls, text: str) -> "RequestBody":
        return cls(parse_form(text))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.fields.get(name, default)

    def __len__(self) -> int:
        return len(self.fields)


@dataclass(frozen=True)
class Request:
    """
    A complete request: one header and one body.

    Owned by the single worker processing its connection; never shared.
    """

    header: RequestHeader
    body: RequestBody = field(default_factory=RequestBody.empty)

    @property
    def method(self) -> HttpMethod:
        return self.header.method

    @property
    def path(self) -> str:
        return self.header.path


# =============================================================================
# PARSER
# =============================================================================

class RequestParser:
    """
    Reads one request from a binary stream.

    ==========================================================================
    PARSER FLOW
    ==========================================================================

        stream
          │
          ▼
        read_header() ── readline() × N until "" or EOF
          │                 │
          │                 ├── line 1      → method, path, query, version
          │                 └── lines 2..N  → "Name: Value" headers
          ▼
        read_body() ──── GET?  → RequestBody.empty()
          │              else  → read(Content-Length) → form fields
          ▼
        Request(header, body)

    ==========================================================================
    LIMITS
    ==========================================================================

        max_line_size:  longest accepted request/header line in bytes
        max_body_size:  largest accepted Content-Length

    Both are rejected as MalformedRequest; this core never answers with
    4xx codes, it just refuses to process the connection.

    ==========================================================================
    """

    def __init__(
        self,
        max_line_size: int = 8192,
        max_body_size: int = 10 * 1024 * 1024,
        encoding: str = "utf-8",
    ):
        self.max_line_size = max_line_size
        self.max_body_size = max_body_size
        self.encoding = encoding

    def parse(self, stream: BinaryIO) -> Request:
        """Read the header block, then the body, and pair them."""
        header = self.read_header(stream)
        body = self.read_body(header, stream)
        return Request(header=header, body=body)

    # =========================================================================
    # PHASE 1: HEADER BLOCK
    # =========================================================================

    def read_header(self, stream: BinaryIO) -> RequestHeader:
        """
        Read lines up to the blank separator line and parse them.

        Raises:
            MalformedRequest: no lines at all, or a bad request line.
        """
        lines = self._read_header_lines(stream)
        if not lines:
            raise MalformedRequest("Empty request: stream ended before request line")

        method, path, query, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return RequestHeader(
            method=method,
            path=path,
            query=query,
            headers=headers,
            version=version,
        )

    def _read_header_lines(self, stream: BinaryIO) -> list[str]:
        lines: list[str] = []
        while True:
            raw = stream.readline(self.max_line_size + 1)
            if not raw:
                break  # End of stream

            if len(raw) > self.max_line_size and not raw.endswith(b"\n"):
                raise MalformedRequest(
                    f"Header line exceeds {self.max_line_size} bytes",
                    fragment=raw[:64].decode(self.encoding, errors="replace"),
                )

            # Accept both CRLF and bare LF terminators
            line = raw.decode(self.encoding, errors="replace").rstrip("\r\n")
            if line == "":
                break  # Header/body separator
            lines.append(line)
        return lines

    def _parse_request_line(
        self,
        line: str,
    ) -> tuple[HttpMethod, str, dict[str, str], str]:
        """
        Parse "METHOD TARGET [VERSION]".

            "GET /login?account=admin HTTP/1.1"
             ─┬─ ──────────┬──────────  ──┬───
              │            │              └── version (defaults to HTTP/1.1)
              │            └── path "/login" + query {"account": "admin"}
              └── HttpMethod.GET
        """
        tokens = line.split()
        if len(tokens) < 2:
            raise MalformedRequest(f"Invalid request line: {line!r}", fragment=line)

        method = HttpMethod.from_token(tokens[0])
        target = tokens[1]
        version = tokens[2] if len(tokens) > 2 else "HTTP/1.1"

        path, _, query_string = target.partition("?")
        return method, path, parse_query_string(query_string), version

    def _parse_headers(self, lines: list[str]) -> dict[str, str]:
        """
        Split each "Name: Value" line on its first colon.

        Names keep the client's casing. Lines without a colon are
        skipped; repeated names keep the last value.
        """
        headers: dict[str, str] = {}
        for line in lines:
            name, sep, value = line.partition(":")
            if not sep:
                continue  # Lenient: ignore junk lines
            headers[name.strip()] = value.strip()
        return headers

    # =========================================================================
    # PHASE 2: BODY
    # =========================================================================

    def read_body(self, header: RequestHeader, stream: BinaryIO) -> RequestBody:
        """
        Read exactly Content-Length bytes for methods that carry a body.

        GET never reads, whatever its headers say. A missing
        Content-Length means an empty body; we do not wait for EOF.

        Raises:
            MalformedRequest: invalid length, or stream ended early.
        """
        if not header.method.has_body:
            return RequestBody.empty()

        length = self._content_length(header)
        if length == 0:
            return RequestBody.empty()

        data = stream.read(length)
        if data is None or len(data) < length:
            received = 0 if data is None else len(data)
            raise MalformedRequest(
                f"Incomplete body: expected {length} bytes, got {received}"
            )

        return RequestBody.from_text(data.decode(self.encoding, errors="replace"))

    def _content_length(self, header: RequestHeader) -> int:
        raw = header.get_header("Content-Length")
        if raw is None:
            return 0

        # int() accepts "+5" and " 5"; the header grammar is digits only
        if not (raw.isascii() and raw.isdigit()):
            raise MalformedRequest(f"Invalid Content-Length: {raw!r}", fragment=raw)

        length = int(raw)
        if length > self.max_body_size:
            raise MalformedRequest(
                f"Content-Length {length} exceeds limit of {self.max_body_size} bytes"
            )
        return length


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(data: bytes, max_body_size: int = 10 * 1024 * 1024) -> Request:
    """
    Parse a complete request held in memory.

    Wraps the bytes in a BytesIO and runs the same stream parser the
    connection layer uses.
    """
    parser = RequestParser(max_body_size=max_body_size)
    return parser.parse(io.BytesIO(data))
