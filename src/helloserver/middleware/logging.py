"""
=============================================================================
ACCESS LOGGING
=============================================================================

One line per request on the "helloserver.access" logger, shaped like the
Apache common log plus duration and user agent:

    127.0.0.1 - - [19/Oct/2026:09:00:00 +0000] "GET /hello HTTP/1.1" 200 6 0.41ms "curl/8.5.0"

Timestamps are UTC with fixed English month names, whatever the host's
timezone and locale. Every response also carries the line's request id in
X-Request-ID.

=============================================================================
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from .base import NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, MONTH_NAMES


logger = logging.getLogger("helloserver.access")


def format_log_time(moment: datetime) -> str:
    """UTC datetime as "19/Oct/2026:09:00:00 +0000"."""
    return f"{moment.day:02d}/{MONTH_NAMES[moment.month - 1]}/{moment:%Y:%H:%M:%S} +0000"


@dataclass
class RequestLog:
    """The fields of one access log line."""

    client_ip: str
    timestamp: str
    method: str
    path: str
    version: str
    status_code: int
    content_length: int
    duration_ms: float
    user_agent: str

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms "{self.user_agent}"'
        )


class LoggingMiddleware:
    """
    Logs each request once its response exists, and tags the response
    with X-Request-ID. A handler exception is logged with the request id
    and re-raised for the service to turn into a 500.
    """

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        received = datetime.now(timezone.utc)
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] {request.method} {request.path} failed: "
                f"{type(e).__name__}: {e}"
            )
            raise

        response.headers["X-Request-ID"] = request_id

        entry = RequestLog(
            client_ip=request.client_address[0] or "-",
            timestamp=format_log_time(received),
            method=request.method,
            path=request.path,
            version=request.version,
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.perf_counter() - started) * 1000,
            user_agent=request.user_agent or "-",
        )
        logger.info(entry.to_text())
        return response
