"""
=============================================================================
MIDDLEWARE
=============================================================================

A middleware is any callable ``(request, next) -> response``. It may look
at the request, call ``next(request)`` to run the rest of the chain, and
adjust what comes back, or answer on its own without calling next.

    handler = chain(router.handle, [LoggingMiddleware()])

        LoggingMiddleware ──► Router.handle ──► hello()
                          ◄──               ◄──

The first middleware in the list is the outermost one.

=============================================================================
"""

from typing import Callable, Sequence

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


NextHandler = Callable[[HTTPRequest], HTTPResponse]
Middleware = Callable[[HTTPRequest, NextHandler], HTTPResponse]


def chain(handler: NextHandler, middleware: Sequence[Middleware]) -> NextHandler:
    """Wrap handler in middleware, middleware[0] outermost."""
    for layer in reversed(middleware):
        handler = _bind(layer, handler)
    return handler


def _bind(layer: Middleware, inner: NextHandler) -> NextHandler:
    def run(request: HTTPRequest) -> HTTPResponse:
        return layer(request, inner)
    return run
