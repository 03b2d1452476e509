"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for the duration of ONE request.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does not preserve message boundaries. A request sent as

    GET /login HTTP/1.1\r\n
    Host: localhost\r\n
    \r\n

may arrive as "GET /lo" followed by "gin HTTP/1.1\r\nHost: ...". Instead
of buffering recv() chunks by hand, the connection exposes the socket as
buffered file objects (socket.makefile). The parser calls readline() and
read(n) on them and the buffering layer waits for as many chunks as it
takes.

    socket ──► makefile("rb") ──► SocketStream.readline() ──► parser
    socket ◄── makefile("wb") ◄── SocketStream.write()    ◄── response

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

    accept ──► NEW ──► OPEN ──► (read request, write response) ──► CLOSED

There is no keep-alive: after one response, or after any failure, the
connection is closed. Every socket error, timeouts included, surfaces as
TransportFailure so the caller has exactly one thing to catch.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)


DRAIN_TIMEOUT = 0.5


class TransportFailure(Exception):
    """A socket read or write failed, or timed out."""

    def __init__(self, message: str, connection_id: Optional[str] = None):
        super().__init__(message)
        self.connection_id = connection_id


class ConnectionState(Enum):
    """Connection lifecycle states, for logging."""

    NEW = "new"          # Accepted, streams not opened yet
    OPEN = "open"        # Streams ready, request in flight
    CLOSED = "closed"    # Socket released


class SocketStream:
    """
    File-like view of a socket that raises TransportFailure.

    Supports the subset of the binary stream interface the parser and
    the processor use: readline(), read(), write(), flush().
    """

    def __init__(self, file: BinaryIO, connection_id: str):
        self._file = file
        self._connection_id = connection_id

    def _failure(self, action: str, error: OSError) -> TransportFailure:
        # socket.timeout is an OSError subclass, so timeouts land here too
        return TransportFailure(f"{action} failed: {error}", self._connection_id)

    def readline(self, size: int = -1) -> bytes:
        try:
            return self._file.readline(size)
        except OSError as e:
            raise self._failure("read", e) from e

    def read(self, size: int = -1) -> bytes:
        try:
            return self._file.read(size)
        except OSError as e:
            raise self._failure("read", e) from e

    def write(self, data: bytes) -> int:
        try:
            return self._file.write(data)
        except OSError as e:
            raise self._failure("write", e) from e

    def flush(self) -> None:
        try:
            self._file.flush()
        except OSError as e:
            raise self._failure("write", e) from e

    def close(self) -> None:
        try:
            self._file.close()
        except OSError:
            pass  # Peer already gone; the socket close below still runs


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier, used as a log prefix.
        timeout: Per-operation socket timeout in seconds (None blocks forever).

    Usage:
        with Connection(client_socket, client_address, timeout=30.0) as conn:
            processor.process(conn.reader, conn.writer)
        # socket and both streams closed here
    """

    socket: socket.socket
    address: tuple
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    timeout: Optional[float] = 30.0
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    _reader: Optional[SocketStream] = field(default=None, repr=False)
    _writer: Optional[SocketStream] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    def _open(self):
        if self.state == ConnectionState.CLOSED:
            raise TransportFailure("connection already closed", self.id)
        if self.state == ConnectionState.NEW:
            self._reader = SocketStream(self.socket.makefile("rb"), self.id)
            self._writer = SocketStream(self.socket.makefile("wb"), self.id)
            self.state = ConnectionState.OPEN

    @property
    def reader(self) -> SocketStream:
        """Buffered input stream over the socket."""
        self._open()
        return self._reader

    @property
    def writer(self) -> SocketStream:
        """Buffered output stream over the socket. Call flush() after writing."""
        self._open()
        return self._writer

    def send(self, data: bytes):
        """Write all of data and flush it to the socket."""
        writer = self.writer
        writer.write(data)
        writer.flush()

    def close(self):
        """
        Close the connection.

            1. close the reader and writer file objects
            2. shutdown(SHUT_WR) sends FIN so the client sees end-of-stream
            3. drain whatever the client still sends, for at most DRAIN_TIMEOUT
            4. close() releases the descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        for stream in (self._reader, self._writer):
            if stream is not None:
                stream.close()

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            # Unread input at close() makes the kernel send RST instead of FIN.
            # One deadline for the whole drain, however the client trickles.
            deadline = time.monotonic() + DRAIN_TIMEOUT
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(1024):
                    break
        except OSError:
            pass  # Timeout or reset; closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
