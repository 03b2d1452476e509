"""
Unit tests for the per-connection pipeline, driven with in-memory streams.
"""

import io

import pytest

from minicat.app import build_dispatcher
from minicat.core.processor import Http11Processor
from minicat.db import InMemoryUserRepository
from minicat.handlers import StaticAssets
from minicat.http.request import MalformedRequest, RequestParser
from minicat.http.status_codes import HTTPStatus


@pytest.fixture
def processor(assets: StaticAssets, users: InMemoryUserRepository) -> Http11Processor:
    return Http11Processor(build_dispatcher(assets, users))


def split_response(data: bytes):
    """Return (status line, headers dict, body) from raw response bytes."""
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode().split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestProcess:
    def test_home(self, processor: Http11Processor):
        data = processor.process_bytes(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert data == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/html;charset=utf-8\r\n"
            b"Content-Length: 12\r\n"
            b"\r\n"
            b"Hello world!"
        )

    def test_login_success(self, processor: Http11Processor, sample_get_request: bytes, pages: dict):
        status_line, headers, body = split_response(processor.process_bytes(sample_get_request))

        assert status_line == "HTTP/1.1 302 Found"
        assert headers["Location"] == "index.html"
        assert headers["Content-Length"] == str(len(pages["login"]))
        assert body == pages["login"]

    def test_login_failure(self, processor: Http11Processor):
        raw = b"GET /login?account=admin&password=nope HTTP/1.1\r\n\r\n"
        status_line, headers, _ = split_response(processor.process_bytes(raw))

        assert status_line == "HTTP/1.1 302 Found"
        assert headers["Location"] == "401.html"

    def test_register(
        self,
        processor: Http11Processor,
        users: InMemoryUserRepository,
        sample_post_request: bytes,
    ):
        status_line, headers, _ = split_response(processor.process_bytes(sample_post_request))

        assert status_line == "HTTP/1.1 302 Found"
        assert headers["Location"] == "/index.html"
        assert users.find_by_account("foo").email == "x@y.com"

    def test_static_file(self, processor: Http11Processor, pages: dict):
        status_line, headers, body = split_response(
            processor.process_bytes(b"GET /css/styles.css HTTP/1.1\r\n\r\n")
        )

        assert status_line == "HTTP/1.1 200 OK"
        assert headers["Content-Type"] == "text/css;charset=utf-8"
        assert body == pages["stylesheet"]

    def test_missing_static_file(self, processor: Http11Processor):
        status_line, headers, body = split_response(
            processor.process_bytes(b"GET /missing.js HTTP/1.1\r\n\r\n")
        )

        assert status_line == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "0"
        assert body == b""

    def test_get_with_content_length_has_empty_body(self, processor: Http11Processor):
        """GET ignores Content-Length: the handler sees no body and nothing blocks."""
        raw = b"GET / HTTP/1.1\r\nContent-Length: 100\r\n\r\n"
        status_line, _, body = split_response(processor.process_bytes(raw))

        assert status_line == "HTTP/1.1 200 OK"
        assert body == b"Hello world!"

    def test_cross_method_fallback(self, processor: Http11Processor, pages: dict):
        """PUT /login is served by the GET /login handler."""
        status_line, headers, body = split_response(
            processor.process_bytes(b"PUT /login HTTP/1.1\r\n\r\n")
        )

        assert status_line == "HTTP/1.1 200 OK"
        assert "Location" not in headers
        assert body == pages["login"]

    def test_post_login_is_static_page(self, processor: Http11Processor, pages: dict):
        """POST has routes of its own, so POST /login never reaches the login handler."""
        raw = b"POST /login?account=admin&password=password HTTP/1.1\r\n\r\n"
        status_line, headers, body = split_response(processor.process_bytes(raw))

        assert status_line == "HTTP/1.1 200 OK"
        assert "Location" not in headers
        assert body == pages["login"]

    def test_returns_response(self, processor: Http11Processor):
        writer = io.BytesIO()
        response = processor.process(io.BytesIO(b"GET / HTTP/1.1\r\n\r\n"), writer)

        assert response.status == HTTPStatus.OK
        assert writer.getvalue() == response.to_bytes()

    def test_access_log(self, processor: Http11Processor, caplog):
        with caplog.at_level("INFO", logger="minicat.core.processor"):
            processor.process_bytes(b"GET / HTTP/1.1\r\n\r\n")

        assert "GET / 200 12" in caplog.text


class TestNothingWrittenOnFailure:
    """Failures happen before the first byte of a response."""

    @pytest.mark.parametrize("raw", [
        b"",
        b"GET\r\n\r\n",
        b"BREW /pot HTTP/1.1\r\n\r\n",
        b"POST /register HTTP/1.1\r\nContent-Length: abc\r\n\r\n",
        b"POST /register HTTP/1.1\r\nContent-Length: 40\r\n\r\naccount=x",
    ])
    def test_malformed_request(self, processor: Http11Processor, raw: bytes):
        writer = io.BytesIO()

        with pytest.raises(MalformedRequest):
            processor.process(io.BytesIO(raw), writer)

        assert writer.getvalue() == b""

    def test_body_limit(self, assets: StaticAssets, users: InMemoryUserRepository):
        processor = Http11Processor(
            build_dispatcher(assets, users),
            RequestParser(max_body_size=4),
        )
        writer = io.BytesIO()
        raw = b"POST /register HTTP/1.1\r\nContent-Length: 5\r\n\r\na=bcd"

        with pytest.raises(MalformedRequest):
            processor.process(io.BytesIO(raw), writer)

        assert writer.getvalue() == b""
        assert users.find_by_account("a") is None

    def test_handler_error(self, assets: StaticAssets):
        """A crashing handler propagates and nothing is written."""
        class BrokenUsers(InMemoryUserRepository):
            def find_by_account(self, account):
                raise RuntimeError("store unavailable")

        processor = Http11Processor(build_dispatcher(assets, BrokenUsers()))
        writer = io.BytesIO()

        with pytest.raises(RuntimeError):
            processor.process(io.BytesIO(b"GET /login?account=a HTTP/1.1\r\n\r\n"), writer)

        assert writer.getvalue() == b""
