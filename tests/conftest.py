"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Optional

import pytest

from minicat import HTTPServer, ServerConfig, create_app
from minicat.db import InMemoryUserRepository, User
from minicat.handlers import StaticAssets


LOGIN_PAGE = b"<html><body>login form</body></html>"
INDEX_PAGE = b"<html><body>index</body></html>"
STYLESHEET = b"body { color: red; }"


@pytest.fixture
def sample_get_request() -> bytes:
    """GET with a query string."""
    return (
        b"GET /login?account=admin&password=password HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Form-encoded registration."""
    body = b"account=foo&password=bar&email=x%40y.com"
    return (
        b"POST /register HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def pages() -> dict:
    """Contents of the files in static_root, by short name."""
    return {
        "login": LOGIN_PAGE,
        "index": INDEX_PAGE,
        "stylesheet": STYLESHEET,
    }


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """A small assets directory with known contents."""
    (tmp_path / "login.html").write_bytes(LOGIN_PAGE)
    (tmp_path / "index.html").write_bytes(INDEX_PAGE)
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "styles.css").write_bytes(STYLESHEET)
    return tmp_path


@pytest.fixture
def assets(static_root: Path) -> StaticAssets:
    return StaticAssets(static_root)


@pytest.fixture
def users() -> InMemoryUserRepository:
    """User store seeded with admin/password."""
    return InMemoryUserRepository([
        User(account="admin", password="password", email="admin@example.com"),
    ])


@pytest.fixture
def config(static_root: Path) -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        static_dir=str(static_root),
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class, despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes, half-close, and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            s.sendall(raw)
            s.shutdown(socket.SHUT_WR)
            chunks = []
            while True:
                try:
                    chunk = s.recv(4096)
                except ConnectionResetError:
                    break
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def test_server(
    config: ServerConfig,
    users: InMemoryUserRepository,
) -> Generator[TestServer, None, None]:
    """The full application on an ephemeral port."""
    test_srv = TestServer(create_app(config, users=users))
    test_srv.start()

    yield test_srv

    test_srv.stop()
