"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between raw bytes and handler functions:

    request.py       bytes → HTTPRequest
    router.py        HTTPRequest → handler
    response.py      HTTPResponse → bytes
    status_codes.py  HTTPStatus enum

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ok,
    error_response,
    not_found,
    method_not_allowed,
    moved_permanently,
)
from .router import Router, Route, clean_path
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ok",
    "error_response",
    "not_found",
    "method_not_allowed",
    "moved_permanently",
    "Router",
    "Route",
    "clean_path",
    "HTTPStatus",
]
