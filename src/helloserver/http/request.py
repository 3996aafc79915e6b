"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the bytes of one request, as Connection.next_request() returns
them, into an HTTPRequest.

    GET /hello?lang=en HTTP/1.1\r\n        ← request line
    Host: localhost:8080\r\n               ← header fields
    User-Agent: curl/8.5.0\r\n
    \r\n                                   ← blank line
    <Content-Length bytes>                 ← body

The method may be any RFC 7230 token; whether a route accepts it is the
router's business. The path is only percent-decoded here. Cleaning it
("//", ".", "..") is left to the router, which redirects to the clean
form.

=============================================================================
ERRORS
=============================================================================

Every failure is an HTTPParseError carrying the status to answer with:

    400 Bad Request                 bad request line, header or Content-Length
    413 Payload Too Large           over max_request_size
    505 HTTP Version Not Supported  anything but HTTP/1.0 and HTTP/1.1

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from urllib.parse import unquote, urlsplit

from .status_codes import HTTPStatus


TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"

REQUEST_LINE = re.compile(rf"^({TOKEN}) (\S+) (HTTP/\d\.\d)$")
HEADER_FIELD = re.compile(rf"^({TOKEN}):[ \t]*(.*?)[ \t]*$")

SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")


class HTTPParseError(Exception):
    """A request that cannot be served, with the status to answer it."""

    def __init__(self, message: str, status_code: HTTPStatus = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = HTTPStatus(status_code)


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         Method token as sent.
        path:           Percent-decoded path, query string removed.
        version:        "HTTP/1.0" or "HTTP/1.1".
        headers:        Lower-cased names; repeated fields comma-joined.
        query_string:   Raw query string, carried over by redirects.
        body:           Exactly Content-Length bytes.
        path_params:    Set by the Router for ":name" and "*name" segments.
        client_address: Peer (ip, port).
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_string: str = ""
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: Tuple[str, int] = ("", 0)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 stays open unless the client sent "Connection: close";
        HTTP/1.0 closes unless it sent "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"


class RequestParser:
    """
    Stateless, so one instance serves every worker thread.

        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(data, ("127.0.0.1", 51234))
    """

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Raises:
            HTTPParseError: If the request is malformed or unsupported.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        head, separator, body = data.partition(b"\r\n\r\n")
        if not separator:
            raise HTTPParseError("Header block is not terminated")

        # latin-1 maps every byte, so decoding cannot fail
        request_line, *field_lines = head.decode("latin-1").split("\r\n")
        method, target, version = self._split_request_line(request_line)
        path, query_string = self._split_target(target)
        headers = self._collect_headers(field_lines)

        length = headers.get("content-length", "0")
        if not length.isdigit():
            raise HTTPParseError(f"Invalid Content-Length: {length!r}")
        if len(body) < int(length):
            raise HTTPParseError(f"Body shorter than Content-Length {length}")

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_string=query_string,
            body=body[:int(length)],
            client_address=client_address,
        )

    def _split_request_line(self, line: str) -> Tuple[str, str, str]:
        match = REQUEST_LINE.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()
        if version not in SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )
        return method, target, version

    def _split_target(self, target: str) -> Tuple[str, str]:
        """(decoded path, raw query) from origin or absolute form."""
        if target.startswith("/"):
            # Origin form. urlsplit would read "//hello" as a host name.
            raw_path, _, query = target.partition("#")[0].partition("?")
        else:
            parts = urlsplit(target)
            raw_path, query = parts.path, parts.query
        return unquote(raw_path) or "/", query

    def _collect_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse "Name: value" lines. A line starting with whitespace
        continues the previous field (obsolete folding).
        """
        headers: Dict[str, str] = {}
        last = None

        for line in lines:
            if line[:1] in (" ", "\t"):
                if last is None:
                    raise HTTPParseError("Continuation line before any header")
                headers[last] += " " + line.strip()
                continue

            match = HEADER_FIELD.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.group(1).lower(), match.group(2)
            headers[name] = f"{headers[name]}, {value}" if name in headers else value
            last = name

        return headers
