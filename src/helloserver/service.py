"""
=============================================================================
HELLO SERVICE
=============================================================================

The Service ties the pieces together and owns the server lifecycle.

    ┌────────────────────────────────────────────────────────────────────┐
    │                            Service                                 │
    │   launched: datetime          config: ServerConfig                 │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                    │
    │   SocketServer ──Connection──► WorkerPool ──► _serve_connection    │
    │                                                   │                │
    │                                  RequestParser ◄──┘                │
    │                                        │                           │
    │                        LoggingMiddleware → Router → hello()        │
    │                                                                    │
    └────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST FLOW
=============================================================================

    1. SocketServer accepts a client and wraps it in a Connection
    2. The WorkerPool queues it (503 straight away if too many wait)
    3. A worker reads one request within read_timeout (408 if not)
    4. RequestParser turns it into an HTTPRequest (400/413/505 if not)
    5. Middleware + Router produce the response (500 if a handler raises)
    6. The response is written within write_timeout
    7. Keep-alive: wait up to the idle timeout for the next request,
       otherwise close

The only failure that stops the service is a bind failure in start();
everything else stays with the connection it happened on.

=============================================================================
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .config import ServerConfig, DEFAULT_HOST, DEFAULT_PORT
from .core import SocketServer, Connection, RequestTooLarge, WorkerPool
from .handlers import hello
from .http import (
    HTTPRequest, HTTPResponse, HTTPStatus, HTTPParseError,
    RequestParser, Router, error_response,
)
from .middleware import Middleware, NextHandler, LoggingMiddleware, chain


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# A refused connection is closed from the accept loop, so keep it short
REJECT_LINGER = 0.1


class Service:
    """
    An HTTP server answering "/hello", plus the time it was created.

        service = new_service("localhost", 8080)
        service.start()          # blocks until stop() or SIGINT/SIGTERM

    Attributes:
        launched: UTC time the service was constructed.
        config: Network and timeout parameters. Treated as read-only once
            start() is running.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Raises:
            ValueError: If the configuration is invalid.
        """
        self.launched = datetime.now(timezone.utc)
        self.config = config or ServerConfig()
        self.config.validate()

        self._listener = SocketServer(self.config)
        self._workers = WorkerPool(
            self._serve_connection,
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            max_pending=self.config.max_pending,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = Router()
        self.routes(self._router)
        self._middleware: List[Middleware] = [LoggingMiddleware()]

        self._handler: Optional[NextHandler] = None  # built by start()
        self._running = False

    def routes(self, router: Router) -> None:
        """Map the accepted paths to their handlers."""
        router.add_route("/hello", hello)

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> str:
        """Configured listen address, "host:port"."""
        return self.config.address

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """(host, port) actually bound, None until listening."""
        return self._listener.bound_address

    @property
    def uptime(self) -> float:
        """Seconds since the service was created."""
        return (datetime.now(timezone.utc) - self.launched).total_seconds()

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        """
        Bind, listen and serve until stop() is called or a SIGINT/SIGTERM
        arrives (when running on the main thread).

        Raises:
            OSError: If the listening socket cannot be bound. Nothing is
                retried.
        """
        configure_logging(self.config.log_level)
        self._handler = chain(self._router.handle, self._middleware)
        self._workers.start()
        self._running = True

        try:
            self._listener.start(self._dispatch)
        finally:
            self._running = False
            self._workers.shutdown(timeout=self.config.read_timeout + self.config.write_timeout)
            logger.info(f"Server stopped after {self.uptime:.1f}s")

    def stop(self):
        """Make start() return. Safe from any thread, even before start()."""
        self._listener.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener accepts connections; False on timeout."""
        return self._listener.ready.wait(timeout)

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _dispatch(self, conn: Connection):
        """Hand a fresh connection to the workers, or refuse it."""
        if not self._workers.submit(conn):
            logger.warning(f"[{conn.id}] {self._workers.pending} connections waiting, refusing {conn.client_ip}")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)
            conn.close(linger=REJECT_LINGER)

    def _serve_connection(self, conn: Connection):
        """
        Answer requests on conn until the client is done (runs on a
        worker). Ends when the client closes or asks to, stays idle past
        the idle timeout, or sends something unanswerable.
        """
        with conn:
            while self._running:
                try:
                    data = conn.next_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    return
                except RequestTooLarge as e:
                    logger.info(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    return
                if data is None:
                    return

                try:
                    request = self._parser.parse(data, conn.address)
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                    self._send_error(conn, e.status_code)
                    return

                response = self._respond(conn, request)
                keep_alive = request.is_keep_alive and self.config.keep_alive and self._running
                response.headers["Connection"] = "keep-alive" if keep_alive else "close"

                sent = conn.send(response.to_bytes(
                    self.config.server_name,
                    include_body=request.method != "HEAD",
                ))
                if not (sent and keep_alive):
                    return

    def _respond(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

    def _send_error(self, conn: Connection, status: HTTPStatus):
        """Answer outside the router (parse errors, timeouts, overload)."""
        response = error_response(status).set_header("Connection", "close")
        conn.send(response.to_bytes(self.config.server_name))


def configure_logging(log_level: str = "INFO"):
    """
    Configure logging for the process.

    basicConfig() leaves an already configured root logger alone, so an
    embedding application keeps its own handlers; only the level of the
    "helloserver" logger tree is forced.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logging.getLogger("helloserver").setLevel(level)


def new_service(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> Service:
    """
    Build a Service listening on host:port with the standard 5 second
    read and write timeouts.
    """
    return Service(ServerConfig(host=host, port=port))
