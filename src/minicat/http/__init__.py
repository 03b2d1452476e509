"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows what HTTP/1.1 looks like on the wire:

    minicat/http/
    ├── request.py       # stream → Request (header parser + body reader)
    ├── response.py      # HTTPResponse → bytes
    ├── router.py        # route table + dispatcher
    ├── status_codes.py  # status codes and reason phrases
    └── mime_types.py    # extension → Content-Type

None of these modules touch sockets; they work on any binary stream,
which is what makes them easy to test with io.BytesIO.

=============================================================================
"""

from .request import (
    HttpMethod,
    MalformedRequest,
    Request,
    RequestBody,
    RequestHeader,
    RequestParser,
    parse_request,
)
from .response import HTTPResponse, ResponseBuilder, ok, redirect
from .router import Dispatcher, Handler, Route, RouteTable, RouteTableBuilder
from .status_codes import HTTPStatus
from .mime_types import get_mime_type

__all__ = [
    # Request side
    "HttpMethod",
    "MalformedRequest",
    "Request",
    "RequestBody",
    "RequestHeader",
    "RequestParser",
    "parse_request",

    # Response side
    "HTTPResponse",
    "ResponseBuilder",
    "HTTPStatus",
    "ok",
    "redirect",

    # Routing
    "Dispatcher",
    "Handler",
    "Route",
    "RouteTable",
    "RouteTableBuilder",

    # Utilities
    "get_mime_type",
]
