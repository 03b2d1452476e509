"""
Unit tests for the thread pool and the connection wrapper.
"""

import socket
import threading
import time

import pytest

from minicat.core.connection import (
    DRAIN_TIMEOUT,
    Connection,
    ConnectionState,
    TransportFailure,
)
from minicat.core.thread_pool import ThreadPool


class TestThreadPool:
    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=4)
        pool.start()

        done = threading.Event()
        results = []

        def task(value):
            results.append(value)
            if len(results) == 3:
                done.set()

        for value in range(3):
            assert pool.submit(task, args=(value,))

        assert done.wait(timeout=5.0)
        pool.shutdown(wait=True, timeout=5.0)

        assert sorted(results) == [0, 1, 2]

    def test_failing_task_does_not_kill_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        done = threading.Event()

        def boom():
            raise RuntimeError("boom")

        pool.submit(boom)
        pool.submit(done.set)

        assert done.wait(timeout=5.0)
        pool.shutdown(wait=True, timeout=5.0)

    def test_submit_requires_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(print)

    def test_full_queue_rejects(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        pool.submit(block)
        assert started.wait(timeout=5.0)

        assert pool.submit(block) is True   # Fills the queue
        assert pool.submit(block) is False  # Queue full, worker busy

        release.set()
        pool.shutdown(wait=True, timeout=5.0)

    def test_shutdown_cancels_queued_tasks(self):
        """Tasks still queued when the drain times out get their cancel callback."""
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        started = threading.Event()
        ran, cancelled = [], []

        def block():
            started.set()
            time.sleep(0.5)

        pool.submit(block)
        assert started.wait(timeout=5.0)

        for name in ("a", "b"):
            pool.submit(ran.append, args=(name,), on_cancel=lambda name=name: cancelled.append(name))

        pool.shutdown(wait=True, timeout=0.1)

        assert ran == []
        assert sorted(cancelled) == ["a", "b"]

    def test_stats(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()

        assert pool.stats["workers"]["total"] == 2
        pool.shutdown()
        assert pool.stats["workers"]["total"] == 0


@pytest.fixture
def socket_pair():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    client_side.close()
    server_side.close()


class TestConnection:
    def test_read_and_send(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 5000), timeout=2.0)

        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")
        assert conn.reader.readline() == b"GET / HTTP/1.1\r\n"

        conn.send(b"HTTP/1.1 200 OK\r\n\r\n")
        assert client_side.recv(1024) == b"HTTP/1.1 200 OK\r\n\r\n"

        conn.close()

    def test_close_sends_end_of_stream(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)  # Lets the drain finish at once

        with Connection(socket=server_side, address=("127.0.0.1", 5000)) as conn:
            conn.reader  # Open the streams

        assert conn.state is ConnectionState.CLOSED
        assert client_side.recv(1024) == b""

    def test_close_is_idempotent(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)
        conn = Connection(socket=server_side, address=("127.0.0.1", 5000))

        conn.close()
        conn.close()

        assert conn.state is ConnectionState.CLOSED

    def test_close_bounded_by_trickling_client(self, socket_pair):
        """A client that never stops sending cannot hold close() open."""
        server_side, client_side = socket_pair
        stop = threading.Event()

        def trickle():
            try:
                while not stop.wait(0.05):
                    client_side.send(b"x")
            except OSError:
                pass

        sender = threading.Thread(target=trickle, daemon=True)
        sender.start()

        conn = Connection(socket=server_side, address=("127.0.0.1", 5000))
        started = time.monotonic()
        conn.close()
        elapsed = time.monotonic() - started

        stop.set()
        sender.join(timeout=5.0)

        assert conn.state is ConnectionState.CLOSED
        assert elapsed < DRAIN_TIMEOUT + 1.0

    def test_read_timeout_is_transport_failure(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 5000), timeout=0.1)

        with pytest.raises(TransportFailure) as exc_info:
            conn.reader.readline()

        assert exc_info.value.connection_id == conn.id

    def test_streams_unavailable_after_close(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)
        conn = Connection(socket=server_side, address=("127.0.0.1", 5000))
        conn.close()

        with pytest.raises(TransportFailure):
            conn.reader

    def test_client_address(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("10.0.0.7", 41234))

        assert conn.client_ip == "10.0.0.7"
        assert conn.client_port == 41234
