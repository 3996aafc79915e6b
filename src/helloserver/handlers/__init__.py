"""
Request handlers.

A handler is a plain function taking an HTTPRequest and returning an
HTTPResponse; Service.routes() decides which path each one serves.
"""

from .hello import hello, GREETING

__all__ = ["hello", "GREETING"]
