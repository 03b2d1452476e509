"""Root page handler."""

from ..http.request import Request
from ..http.response import HTTPResponse, ok


GREETING = "Hello world!"


def home(request: Request) -> HTTPResponse:
    """GET / - always 200 with a fixed greeting."""
    return ok(GREETING, content_type=request.header.content_type)
