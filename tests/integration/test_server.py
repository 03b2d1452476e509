"""
End-to-end tests: the full application over real sockets.
"""

import socket
import threading

from minicat.db import InMemoryUserRepository


def status_line(response: bytes) -> bytes:
    return response.split(b"\r\n", 1)[0]


class TestEndToEnd:
    def test_home(self, test_server):
        response = test_server.request(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert response == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/html;charset=utf-8\r\n"
            b"Content-Length: 12\r\n"
            b"\r\n"
            b"Hello world!"
        )

    def test_login_page(self, test_server, pages: dict):
        response = test_server.request(b"GET /login HTTP/1.1\r\n\r\n")

        assert status_line(response) == b"HTTP/1.1 200 OK"
        assert b"Location" not in response
        assert response.endswith(pages["login"])

    def test_login_redirects(self, test_server):
        ok = test_server.request(b"GET /login?account=admin&password=password HTTP/1.1\r\n\r\n")
        bad = test_server.request(b"GET /login?account=admin&password=nope HTTP/1.1\r\n\r\n")

        assert status_line(ok) == b"HTTP/1.1 302 Found"
        assert b"Location: index.html\r\n" in ok
        assert b"Location: 401.html\r\n" in bad

    def test_register_then_login(
        self,
        test_server,
        users: InMemoryUserRepository,
        sample_post_request: bytes,
    ):
        response = test_server.request(sample_post_request)

        assert status_line(response) == b"HTTP/1.1 302 Found"
        assert b"Location: /index.html\r\n" in response
        assert users.find_by_account("foo") is not None

        login = test_server.request(b"GET /login?account=foo&password=bar HTTP/1.1\r\n\r\n")
        assert b"Location: index.html\r\n" in login

    def test_static_file(self, test_server, pages: dict):
        response = test_server.request(b"GET /css/styles.css HTTP/1.1\r\n\r\n")

        assert b"Content-Type: text/css;charset=utf-8\r\n" in response
        assert response.endswith(pages["stylesheet"])

    def test_missing_static_file(self, test_server):
        response = test_server.request(b"GET /nope.png HTTP/1.1\r\n\r\n")

        assert status_line(response) == b"HTTP/1.1 200 OK"
        assert response.endswith(b"Content-Length: 0\r\n\r\n")

    def test_malformed_request_gets_no_response(self, test_server):
        """The connection is closed without a single byte written."""
        assert test_server.request(b"GET\r\n\r\n") == b""
        assert test_server.request(b"BREW /pot HTTP/1.1\r\n\r\n") == b""

    def test_server_survives_malformed_request(self, test_server):
        test_server.request(b"nonsense\r\n\r\n")

        response = test_server.request(b"GET / HTTP/1.1\r\n\r\n")
        assert response.endswith(b"Hello world!")

    def test_one_request_per_connection(self, test_server):
        """A second pipelined request on the same connection is not answered."""
        response = test_server.request(
            b"GET / HTTP/1.1\r\n\r\n"
            b"GET /login HTTP/1.1\r\n\r\n"
        )

        assert response.count(b"HTTP/1.1 ") == 1
        assert response.endswith(b"Hello world!")

    def test_slow_client(self, test_server):
        """Bytes arriving in pieces are reassembled into one request."""
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as s:
            for piece in (b"GET / HT", b"TP/1.1\r\nHo", b"st: x\r\n", b"\r\n"):
                s.sendall(piece)
            s.shutdown(socket.SHUT_WR)

            data = b""
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                data += chunk

        assert data.endswith(b"Hello world!")

    def test_concurrent_clients(self, test_server):
        results = []
        lock = threading.Lock()

        def client():
            response = test_server.request(b"GET / HTTP/1.1\r\n\r\n")
            with lock:
                results.append(response)

        threads = [threading.Thread(target=client) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert len(results) == 20
        assert all(r.endswith(b"Hello world!") for r in results)
