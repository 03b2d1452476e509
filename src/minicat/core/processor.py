"""
=============================================================================
HTTP/1.1 PROCESSOR
=============================================================================

The per-connection pipeline. One call to process() handles exactly one
request on one stream pair:

    reader ──► RequestParser.parse() ──► Request
                                           │
                                           ▼
                                  Dispatcher.dispatch() ──► HTTPResponse
                                                               │
    writer ◄── write() + flush() ◄── HTTPResponse.to_bytes() ◄─┘

=============================================================================
NOTHING IS WRITTEN ON FAILURE
=============================================================================

Parsing and dispatch both finish before the first byte is written, so
an exception from either leaves the writer untouched:

    MalformedRequest    raised by the parser
    anything else       raised by a handler

The caller logs it and closes the connection. This processor produces
only what handlers produce (200 and 302); it has no error pages.

The processor knows nothing about sockets. Any binary stream pair
works, which is how the tests drive it with io.BytesIO.

=============================================================================
"""

import io
import logging
import time
from typing import BinaryIO, Optional

from ..http.request import RequestParser
from ..http.response import HTTPResponse
from ..http.router import Dispatcher


logger = logging.getLogger(__name__)


class Http11Processor:
    """
    Runs the parse, dispatch, serialize, write pipeline for one request.

    Stateless between calls, so one instance is shared by all workers.

    Usage:
        processor = Http11Processor(dispatcher)
        processor.process(conn.reader, conn.writer)
    """

    def __init__(self, dispatcher: Dispatcher, parser: Optional[RequestParser] = None):
        self.dispatcher = dispatcher
        self.parser = parser or RequestParser()

    def process(self, reader: BinaryIO, writer: BinaryIO) -> HTTPResponse:
        """
        Handle one request from reader and write the response to writer.

        Returns:
            The response that was written.

        Raises:
            MalformedRequest: the request could not be parsed.
            TransportFailure: the stream failed (socket streams only).
            Exception: whatever a handler raised.
        """
        start_time = time.time()

        request = self.parser.parse(reader)
        response = self.dispatcher.dispatch(request)
        data = response.to_bytes()

        writer.write(data)
        writer.flush()

        duration = (time.time() - start_time) * 1000
        logger.info(
            f"{request.method.value} {request.path} "
            f"{int(response.status)} {len(response.body_bytes)} {duration:.1f}ms"
        )
        return response

    def process_bytes(self, data: bytes) -> bytes:
        """Run the pipeline over an in-memory request and return the response bytes."""
        writer = io.BytesIO()
        self.process(io.BytesIO(data), writer)
        return writer.getvalue()
