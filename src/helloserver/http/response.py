"""
=============================================================================
HTTP RESPONSES
=============================================================================

Handlers return an HTTPResponse; the service serializes it with
to_bytes():

    HTTP/1.1 200 OK\r\n                          ← status line
    Content-Type: text/plain; charset=utf-8\r\n
    Content-Length: 6\r\n                        ← filled in if missing
    Date: Mon, 19 Oct 2026 09:00:00 GMT\r\n      ← filled in if missing
    Server: helloserver/1.0.0\r\n                ← filled in if missing
    \r\n
    hello\n

The functions at the bottom build the handful of responses this server
sends.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass
class HTTPResponse:
    """Status, header fields and body of a response."""

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "helloserver", include_body: bool = True) -> bytes:
        """
        Wire form of the response.

        Args:
            server_name: Server header value unless one is set.
            include_body: False for HEAD. Content-Length still gives the
                size of the body a GET would get.
        """
        fields = {
            "Content-Length": str(len(self.body)),
            "Date": format_http_date(datetime.now(timezone.utc)),
            "Server": server_name,
        }
        fields.update(self.headers)

        head = self.status_line + "\r\n"
        head += "".join(f"{name}: {value}\r\n" for name, value in fields.items())
        head += "\r\n"

        data = head.encode("latin-1")
        return data + self.body if include_body else data


def format_http_date(moment: datetime) -> str:
    """
    RFC 7231 IMF-fixdate of a UTC datetime, e.g. "Mon, 19 Oct 2026
    09:00:00 GMT". Names come from fixed tables, never from the locale.
    """
    return (
        f"{DAY_NAMES[moment.weekday()]}, {moment.day:02d} "
        f"{MONTH_NAMES[moment.month - 1]} {moment.year} "
        f"{moment:%H:%M:%S} GMT"
    )


# =============================================================================
# RESPONSES THIS SERVER SENDS
# =============================================================================

def ok(text: str) -> HTTPResponse:
    """200 with a plain text body."""
    return HTTPResponse(
        status=HTTPStatus.OK,
        headers={"Content-Type": TEXT_PLAIN},
        body=text.encode("utf-8"),
    )


def error_response(status: HTTPStatus, message: str = "") -> HTTPResponse:
    """
    Plain text error. The body is message plus a newline, by default
    "<code> <phrase>". nosniff stops browsers from rendering it as HTML.
    """
    status = HTTPStatus(status)
    text = message or f"{int(status)} {status.phrase}"
    return HTTPResponse(
        status=status,
        headers={"Content-Type": TEXT_PLAIN, "X-Content-Type-Options": "nosniff"},
        body=(text + "\n").encode("utf-8"),
    )


def not_found() -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, "404 page not found")


def method_not_allowed(allowed: List[str]) -> HTTPResponse:
    return error_response(HTTPStatus.METHOD_NOT_ALLOWED).set_header("Allow", ", ".join(allowed))


def moved_permanently(location: str) -> HTTPResponse:
    """301 with an empty body."""
    return HTTPResponse(status=HTTPStatus.MOVED_PERMANENTLY, headers={"Location": location})
