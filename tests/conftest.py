"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Dict, Generator, List, Tuple

import pytest

from helloserver import Service, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for the greeting."""
    return (
        b"GET /hello?lang=en&lang=fr HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"name=world"
    return (
        b"POST /hello HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def free_port() -> int:
    """A port nothing is listening on right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def occupied_port() -> Generator[int, None, None]:
    """A port held by another listening socket for the whole test."""
    holder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    holder.bind(("127.0.0.1", 0))
    holder.listen(1)
    try:
        yield holder.getsockname()[1]
    finally:
        holder.close()


class ServiceThread:
    """Runs a Service in a background thread for end-to-end tests."""

    def __init__(self, service: Service):
        self.service = service
        self._thread = threading.Thread(target=self.service.start, daemon=True)

    @property
    def port(self) -> int:
        return self.service.bound_address[1]

    def start(self):
        self._thread.start()
        if not self.service.wait_until_ready(timeout=5.0):
            raise RuntimeError("Service failed to start")

    def stop(self):
        self.service.stop()
        self._thread.join(timeout=10.0)


class RawResponse:
    """A response read back off the wire."""

    def __init__(self, data: bytes):
        head, _, self.body = data.partition(b"\r\n\r\n")
        lines = head.decode("latin-1").split("\r\n")
        version, code, *_ = lines[0].split(" ", 2)
        self.version = version
        self.status = int(code)
        self.headers: Dict[str, str] = {}
        for line in lines[1:]:
            name, _, value = line.partition(":")
            self.headers[name.strip().lower()] = value.strip()


def split_responses(data: bytes, head_only: bool = False) -> List[RawResponse]:
    """Split a byte stream carrying several responses (keep-alive)."""
    responses = []
    while data:
        head_end = data.index(b"\r\n\r\n") + 4
        response = RawResponse(data[:head_end])
        length = 0 if head_only else int(response.headers.get("content-length", 0))
        response.body = data[head_end:head_end + length]
        responses.append(response)
        data = data[head_end + length:]
    return responses


class RawClient:
    """Talks HTTP to the test service over plain sockets."""

    def __init__(self, port: int, host: str = "127.0.0.1"):
        self.address = (host, port)

    def send(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes and read until the server closes."""
        with socket.create_connection(self.address, timeout=timeout) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def request(self, method: str, path: str, headers: Tuple[str, ...] = ()) -> RawResponse:
        lines = [f"{method} {path} HTTP/1.1", "Host: test", "Connection: close", *headers]
        raw = ("\r\n".join(lines) + "\r\n\r\n").encode()
        return RawResponse(self.send(raw))

    def get(self, path: str) -> RawResponse:
        return self.request("GET", path)


@pytest.fixture
def service_factory() -> Generator[Callable[..., ServiceThread], None, None]:
    """Start Services with custom config; all are stopped after the test."""
    started: List[ServiceThread] = []

    def factory(**overrides) -> ServiceThread:
        settings = dict(host="127.0.0.1", port=0, min_workers=2, max_workers=4)
        settings.update(overrides)
        runner = ServiceThread(Service(ServerConfig(**settings)))
        runner.start()
        started.append(runner)
        return runner

    yield factory

    for runner in started:
        runner.stop()


@pytest.fixture
def running_service(service_factory) -> ServiceThread:
    """A Service on an ephemeral port."""
    return service_factory()


@pytest.fixture
def client(running_service: ServiceThread) -> RawClient:
    return RawClient(running_service.port)
