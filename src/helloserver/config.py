"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One dataclass holds every knob the server has. Only host and port are
exposed on the command line; the rest keep the defaults below, which
match a stock Go net/http server wrapped with 5 second read and write
timeouts.

    ServerConfig()                               # localhost:8080
    ServerConfig(host="0.0.0.0", port=80)        # in a container
    ServerConfig(host="127.0.0.1", port=0)       # tests: OS picks a port

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional

from . import __version__


DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080


@dataclass
class ServerConfig:
    """
    Configuration for the hello server.

    NETWORK SETTINGS
        host, port, backlog, buffer_size

    TIMEOUTS
        read_timeout, write_timeout, idle_timeout

    HTTP SETTINGS
        keep_alive, max_request_size, server_name

    THREADING
        min_workers, max_workers, max_pending

    LOGGING
        log_level
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    backlog: int = 128
    """Length of the kernel accept queue."""

    buffer_size: int = 8192
    """Bytes asked for per recv() call."""

    # ─────────────────────────────────────────────────────────────────────
    # TIMEOUTS (seconds)
    # ─────────────────────────────────────────────────────────────────────

    read_timeout: float = 5.0
    """Deadline for reading one whole request, headers and body."""

    write_timeout: float = 5.0
    """Deadline for writing one whole response."""

    idle_timeout: Optional[float] = None
    """
    How long a kept-alive connection may sit idle waiting for its next
    request. None means "same as read_timeout".
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True

    max_request_size: int = 1024 * 1024
    """Requests larger than this get 413."""

    server_name: str = f"helloserver/{__version__}"

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    max_pending: int = 100
    """Accepted connections allowed to wait for a worker; beyond that, 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @property
    def address(self) -> str:
        """The listen address as "host:port"."""
        return f"{self.host}:{self.port}"

    @property
    def effective_idle_timeout(self) -> float:
        return self.idle_timeout if self.idle_timeout is not None else self.read_timeout

    def validate(self) -> None:
        """
        Reject values the server cannot run with.

        Called from Service.__init__ so a bad address fails at startup
        rather than on the first connection.

        Raises:
            ValueError: describing the first bad field.
        """
        if not self.host or any(c.isspace() for c in self.host):
            raise ValueError(f"Invalid host: {self.host!r}")

        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        for name in ("read_timeout", "write_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")

        if self.idle_timeout is not None and self.idle_timeout <= 0:
            raise ValueError("idle_timeout must be > 0")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.max_pending < 1:
            raise ValueError("max_pending must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {self.log_level!r}")
