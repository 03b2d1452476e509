"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the networking pieces to the request pipeline.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌─────────────────┐      │
    │    │ SocketServer │    │  ThreadPool  │    │ Http11Processor │      │
    │    │  (accept)    │    │  (workers)   │    │ (one request)   │      │
    │    └──────────────┘    └──────────────┘    └────────┬────────┘      │
    │                                                     ▼               │
    │                                            ┌─────────────────┐      │
    │                                            │   Dispatcher    │      │
    │                                            │ routes+fallback │      │
    │                                            └─────────────────┘      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts a TCP connection     (accept thread)
    2. The Connection is queued in the ThreadPool
    3. A worker runs Http11Processor.process()   (worker thread)
         parse ──► dispatch ──► serialize ──► write
    4. The connection is closed, whatever happened

A failure in step 3 is logged and the connection is closed WITHOUT a
response: a malformed request, a stalled socket and a crashing handler
all look the same to the client.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import Connection, Http11Processor, SocketServer, ThreadPool, TransportFailure
from .http import Dispatcher, MalformedRequest, RequestParser


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server, one request per connection.

    =========================================================================
    USAGE
    =========================================================================

        routes = RouteTableBuilder()
        routes.register("GET", "/", home)
        dispatcher = Dispatcher(routes.build(), fallback=static.handle)

        server = HTTPServer(ServerConfig(port=8080), dispatcher)
        server.run()   # Blocks until Ctrl+C / SIGTERM / shutdown()

    Most callers use minicat.app.create_app() instead, which does the
    wiring above for the bundled handlers.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig], dispatcher: Dispatcher):
        self.config = config or ServerConfig()
        self.config.validate()  # Fail fast on invalid config

        self.dispatcher = dispatcher

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._processor = Http11Processor(
            dispatcher,
            RequestParser(max_body_size=self.config.max_body_size),
        )

        self._running = False

    @property
    def processor(self) -> Http11Processor:
        return self._processor

    @property
    def address(self):
        """(host, port) actually bound; see SocketServer.address."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, configure_logging: bool = True):
        """
        Start the server and block until it is shut down.

        Args:
            configure_logging: Install the root log handler. Embedders that
                               manage logging themselves pass False.
        """
        if configure_logging:
            self._setup_logging()

        self._running = True
        self._thread_pool.start()

        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")
        logger.info(f"Serving static files from {self.config.static_dir}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minicat").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False

        # Let in-flight requests finish
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue an accepted connection for a worker (accept thread)."""
        queued = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            on_cancel=conn.close,
        )
        if not queued:
            logger.warning(f"[{conn.id}] Thread pool full, dropping connection")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve exactly one request, then close (worker thread).

        =====================================================================
        FAILURE HANDLING
        =====================================================================

            MalformedRequest   WARNING    nothing written
            TransportFailure   WARNING    nothing (more) written
            any other error    EXCEPTION  nothing written

        In every case the connection is closed by the with block.

        =====================================================================
        """
        with conn:
            logger.info(f"connect host: {conn.client_ip}, port: {conn.client_port}")
            try:
                self._processor.process(conn.reader, conn.writer)
            except MalformedRequest as e:
                logger.warning(f"[{conn.id}] Malformed request: {e}")
            except TransportFailure as e:
                logger.warning(f"[{conn.id}] Transport failure: {e}")
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
