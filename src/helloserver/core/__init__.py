"""
=============================================================================
CORE NETWORKING
=============================================================================

    socket_server.py  listening socket and accept loop
    connection.py     one client socket: read request, send response, close
    workers.py        threads serving accepted connections

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, RequestTooLarge
from .workers import WorkerPool

__all__ = [
    "SocketServer",
    "Connection",
    "RequestTooLarge",
    "WorkerPool",
]
