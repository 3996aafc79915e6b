"""
=============================================================================
TCP LISTENER
=============================================================================

The SocketServer owns the listening socket: resolve, bind, listen, then
accept until told to stop, wrapping each client in a Connection.

    getaddrinfo() → socket() → bind() → listen() → accept() ...
                                 │
                                 └── EADDRINUSE when something else holds
                                     the port: logged, then re-raised

A SocketServer serves once. shutdown() may come from a signal handler,
another thread, or even before start(); in every case start() returns
within one ACCEPT_POLL_INTERVAL.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Dict, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Listening socket and accept loop.

        server = SocketServer(config)
        server.start(on_connection)   # blocks until shutdown()

    SIGINT and SIGTERM call shutdown() when start() runs on the main
    thread. ``ready`` is set while the socket is listening, and
    ``bound_address`` gives the real port when config.port is 0.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.ready = threading.Event()

        self._stop = threading.Event()
        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None
        self._saved_handlers: Dict[int, object] = {}

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """(host, port) actually bound, None before start()."""
        return self._bound_address

    def start(self, on_connection: Callable[[Connection], None]):
        """
        Listen and pass every accepted client to on_connection.

        Raises:
            OSError: The address could not be resolved or bound. Nothing
                is retried.
        """
        self._socket = self._bind()
        try:
            self._socket.listen(self.config.backlog)
            self._bound_address = self._socket.getsockname()[:2]

            if self._stop.is_set():
                logger.info("Stopped before serving")
                return

            self._trap_signals()
            self.ready.set()
            logger.info(f"Listening on {self._bound_address[0]}:{self._bound_address[1]}")
            self._accept_until_stopped(on_connection)
        finally:
            self._release_signals()
            self._socket.close()
            self._socket = None
            self.ready.clear()
            logger.info("Listener stopped")

    def shutdown(self):
        """Ask start() to return. Safe from any thread, at any time."""
        if self.ready.is_set() and not self._stop.is_set():
            logger.info("Shutting down listener...")
        self._stop.set()

    def _bind(self) -> socket.socket:
        """
        Bound, not yet listening, socket for config.host:config.port.

        IPv4 results win, so "localhost" lands on 127.0.0.1 even where the
        resolver lists ::1 first.
        """
        try:
            infos = socket.getaddrinfo(
                self.config.host, self.config.port,
                type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE,
            )
        except socket.gaierror as e:
            logger.error(f"Cannot resolve {self.config.host}: {e}")
            raise

        family, kind, proto, _, sockaddr = min(infos, key=lambda info: info[0] != socket.AF_INET)
        sock = socket.socket(family, kind, proto)

        try:
            # No SO_REUSEPORT: a live listener on the port must make bind fail
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.bind(sockaddr)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.address}: {e}")
            sock.close()
            raise

        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _accept_until_stopped(self, on_connection: Callable[[Connection], None]):
        config = self.config
        while not self._stop.is_set():
            try:
                client, peer = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                logger.error(f"Accept failed: {e}")
                break

            logger.debug(f"Accepted {peer[0]}:{peer[1]}")
            on_connection(Connection(
                socket=client,
                address=peer[:2],
                read_timeout=config.read_timeout,
                write_timeout=config.write_timeout,
                idle_timeout=config.effective_idle_timeout,
                buffer_size=config.buffer_size,
                max_request_size=config.max_request_size,
            ))

    def _trap_signals(self):
        # signal.signal() only works on the main thread; elsewhere the
        # owner calls shutdown() itself.
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._saved_handlers[sig] = signal.signal(sig, on_signal)

    def _release_signals(self):
        while self._saved_handlers:
            sig, handler = self._saved_handlers.popitem()
            signal.signal(sig, handler)
