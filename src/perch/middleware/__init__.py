"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware:
    AccessLogMiddleware -- One log line per request on ``perch.access``
"""

from perch.middleware.access_log import AccessLogMiddleware
from perch.middleware.protocol import Middleware, Next

__all__ = ["AccessLogMiddleware", "Middleware", "Next"]
