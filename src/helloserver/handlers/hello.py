"""The greeting handler."""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


GREETING = "hello\n"


def hello(request: HTTPRequest) -> HTTPResponse:
    """Answer any request with 200 and "hello" followed by a new line."""
    return ok(GREETING)
