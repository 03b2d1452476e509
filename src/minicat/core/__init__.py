"""
Core networking and concurrency.

    SocketServer    accept loop, one Connection per client
    Connection      one client socket, exposed as buffered streams
    ThreadPool      workers that each own one connection at a time
    Http11Processor parse, dispatch and respond for one request
"""

from .connection import Connection, ConnectionState, SocketStream, TransportFailure
from .processor import Http11Processor
from .socket_server import SocketServer
from .thread_pool import Task, ThreadPool, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketStream",
    "TransportFailure",
    "Http11Processor",
    "SocketServer",
    "Task",
    "ThreadPool",
    "Worker",
    "WorkerState",
]
