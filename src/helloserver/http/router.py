"""
=============================================================================
URL ROUTER
=============================================================================

Maps a request's path and method to a handler.

    router = Router()
    router.add_route("/hello", hello)          # any method
    response = router.handle(request)

Path patterns are matched against the whole path, case-sensitively:

    /hello          /hello only; not /hello/, not /Hello
    /users/:id      /users/42        → {"id": "42"}
    /files/*rest    /files/a/b.txt   → {"rest": "a/b.txt"}

The first registered route that matches wins. When none does:

    path not in clean form ("//hello", "/./hello", "/a/../hello")
                                    → 301 to the clean path
    path known, method not          → 405 with an Allow header
    otherwise                       → 404 "404 page not found"

=============================================================================
"""

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, moved_permanently, not_found


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


def clean_path(path: str) -> str:
    """
    Canonical form of a URL path: rooted, no empty, "." or ".." segments,
    trailing slash kept.

        clean_path("//hello")       → "/hello"
        clean_path("/a/../hello")   → "/hello"
        clean_path("/a/./b/")       → "/a/b/"
        clean_path("")              → "/"
    """
    if not path:
        return "/"
    rooted = path if path.startswith("/") else "/" + path

    # normpath leaves a leading "//" alone, POSIX gives it a meaning
    cleaned = "/" + posixpath.normpath(rooted).lstrip("/")

    if rooted.endswith("/") and cleaned != "/":
        cleaned += "/"
    return cleaned


def compile_pattern(path: str) -> re.Pattern:
    """
    Anchored regex for a route pattern.

        "/users/:id/files/*rest" → ^/users/(?P<id>[^/]+)/files/(?P<rest>.*)$
    """
    regex = ""
    for segment in path.split("/")[1:]:
        if segment.startswith(":"):
            regex += f"/(?P<{segment[1:]}>[^/]+)"
        elif segment.startswith("*"):
            regex += f"/(?P<{segment[1:] or 'wildcard'}>.*)"
            break
        else:
            regex += "/" + re.escape(segment)
    return re.compile(f"^{regex}$")


@dataclass
class Route:
    """A path pattern, the method it answers (None for any) and its handler."""

    path: str
    method: Optional[str]
    handler: Handler
    pattern: re.Pattern


class Router:
    """Ordered route table; Router.handle is the innermost request handler."""

    # Advertised in Allow for routes that take any method
    ANY_METHOD = ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(self, path: str, handler: Handler, method: Optional[str] = None) -> Route:
        """
        Register handler for path, for one method or (method=None) all.

        Raises:
            ValueError: If path does not start with "/".
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")

        route = Route(path, method.upper() if method else None, handler, compile_pattern(path))
        self._routes.append(route)
        logger.debug(f"Route {route.method or 'ANY'} {path}")
        return route

    def match(self, method: str, path: str) -> Optional[Tuple[Route, Dict[str, str]]]:
        """First (route, path parameters) accepting method and path."""
        method = method.upper()
        for route in self._routes:
            if route.method not in (None, method):
                continue
            found = route.pattern.match(path)
            if found:
                return route, found.groupdict()
        return None

    def allowed_methods(self, path: str) -> List[str]:
        """Methods accepted for path by any route, sorted."""
        methods = set()
        for route in self._routes:
            if route.pattern.match(path):
                if route.method is None:
                    return list(self.ANY_METHOD)
                methods.add(route.method)
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        canonical = clean_path(request.path)
        if canonical != request.path:
            if request.query_string:
                canonical += "?" + request.query_string
            return moved_permanently(canonical)

        found = self.match(request.method, request.path)
        if found:
            route, request.path_params = found
            return route.handler(request)

        allowed = self.allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)
        return not_found()
