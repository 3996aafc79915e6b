"""
=============================================================================
CLIENT CONNECTION
=============================================================================

A Connection is one accepted client socket. The service loop uses three
calls on it:

    data = conn.next_request()     # bytes of one request, or None when done
    conn.send(response_bytes)      # False if the client went away
    conn.close()

Bytes that arrive after the end of a request stay in the connection and
start the next one, so pipelined requests are served in order.

=============================================================================
TIMEOUTS
=============================================================================

    read_timeout    Whole request, counted from its first byte. Also the
                    wait for the very first request on a new connection;
                    expiry raises TimeoutError (the client gets 408).

    idle_timeout    Wait for the first byte of a follow-up request on a
                    kept-alive connection. Expiry ends it quietly.

    write_timeout   One whole response.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

HEADER_END = b"\r\n\r\n"

# Seconds close() keeps reading after half-closing, so unread client bytes
# do not turn the close into a reset that destroys the response.
CLOSE_LINGER = 0.5


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


def declared_length(head: bytes) -> int:
    """Content-Length of a raw header block; 0 if absent or unreadable."""
    for line in head.split(b"\r\n")[1:]:
        name, colon, value = line.partition(b":")
        if colon and name.strip().lower() == b"content-length":
            try:
                return max(int(value), 0)
            except ValueError:
                return 0  # RequestParser answers 400 for it
    return 0


@dataclass
class Connection:
    """
    An accepted client socket plus the bytes read ahead on it.

    Attributes:
        socket: The client socket.
        address: Peer (ip, port).
        id: Short random id that tags log lines.
        served: Requests read so far.
        closed: Set by close().
    """

    socket: socket.socket
    address: Tuple[str, int]

    read_timeout: float = 5.0
    write_timeout: float = 5.0
    idle_timeout: float = 5.0
    buffer_size: int = 8192
    max_request_size: int = 1024 * 1024

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    served: int = 0
    closed: bool = False

    _unread: bytearray = field(default_factory=bytearray, repr=False)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    def next_request(self) -> Optional[bytes]:
        """
        Read the next complete request: headers, blank line, then
        Content-Length bytes of body.

        Returns:
            The request bytes. None if the client closed the connection,
            or a kept-alive connection stayed idle, before a new request
            started.

        Raises:
            TimeoutError: The request did not arrive within read_timeout.
            RequestTooLarge: The request is over max_request_size.
        """
        if not self._unread:
            first_wait = self.idle_timeout if self.served else self.read_timeout
            chunk = self._receive(first_wait)
            if chunk is None and self.served:
                logger.debug(f"[{self.id}] Idle for {first_wait}s, closing")
                return None
            if chunk is None:
                raise TimeoutError("Request read timeout")
            if not chunk:
                return None
            self._unread += chunk

        deadline = time.monotonic() + self.read_timeout

        head_end = self._unread.find(HEADER_END)
        while head_end < 0:
            self._check_size(len(self._unread))
            if not self._fill(deadline):
                return None
            head_end = self._unread.find(HEADER_END)

        end = head_end + len(HEADER_END) + declared_length(bytes(self._unread[:head_end]))
        self._check_size(end)

        while len(self._unread) < end:
            if not self._fill(deadline):
                break  # short body; the parser rejects it

        request = bytes(self._unread[:end])
        del self._unread[:end]
        self.served += 1
        return request

    def _check_size(self, size: int):
        if size > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {size} bytes")

    def _fill(self, deadline: float) -> bool:
        """Append one recv() worth of bytes; False on end of stream."""
        remaining = deadline - time.monotonic()
        chunk = self._receive(remaining) if remaining > 0 else None
        if chunk is None:
            raise TimeoutError("Request read timeout")
        self._unread += chunk
        return bool(chunk)

    def _receive(self, timeout: float) -> Optional[bytes]:
        """One recv(): None on timeout, b"" when the peer is gone."""
        self.socket.settimeout(timeout)
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            return None
        except ConnectionError:
            return b""

    def send(self, data: bytes) -> bool:
        """Write data within write_timeout; False if it could not be sent."""
        self.socket.settimeout(self.write_timeout)
        try:
            self.socket.sendall(data)
        except socket.timeout:
            logger.warning(f"[{self.id}] Write timed out after {self.write_timeout}s")
            return False
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        return True

    def close(self, linger: float = CLOSE_LINGER):
        """Half-close, read off what the client still sends, release the fd."""
        if self.closed:
            return
        self.closed = True

        try:
            self.socket.shutdown(socket.SHUT_WR)
            give_up = time.monotonic() + linger
            remaining = linger
            while remaining > 0:
                self.socket.settimeout(remaining)
                if not self.socket.recv(self.buffer_size):
                    break
                remaining = give_up - time.monotonic()
        except OSError:
            pass  # Peer already gone, or linger ran out
        finally:
            self.socket.close()

        logger.debug(f"[{self.id}] Closed after {self.served} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
