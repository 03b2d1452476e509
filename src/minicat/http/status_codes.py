"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes the processor knows how to name on the status line.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK     - home page, login form, static files             │
    │  301   │ Moved Permanently - ResponseBuilder.redirect(permanent)  │
    │  302   │ Found  - login result, registration                      │
    └────────┴───────────────────────────────────────────────────────────┘

There are no 4xx or 5xx members: failures close the connection instead
of producing an error response.

=============================================================================
"""

from enum import IntEnum
from typing import Union


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.FOUND == 302
        True
        >>> HTTPStatus.FOUND.phrase
        'Found'
    """

    OK = 200
    MOVED_PERMANENTLY = 301
    FOUND = 302

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 302 Found
                     ─── ─────
                      │    └── phrase
                      └─────── code
        """
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
}


def reason_phrase(status: Union[int, HTTPStatus]) -> str:
    """
    Get the reason phrase for any integer status code.

    Unknown codes fall back to "Unknown" rather than raising, so a
    handler can return an unusual code without breaking serialization.
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"
