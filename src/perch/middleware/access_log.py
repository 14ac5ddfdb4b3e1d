"""One log line per request on the ``perch.access`` logger.

Added in front of all other middleware when ``AppConfig.access_log`` is
true; add it by hand instead to choose its position or logger.
"""

import logging
import time

from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next

logger = logging.getLogger("perch.access")


class AccessLogMiddleware:
    """Log client, request line, status, and duration.

    Requests that end in an ``HTTPError`` (404, 401, ...) are logged with
    that status before the error continues to the error handlers. The
    record also carries ``method``, ``path``, ``status_code`` and
    ``duration_ms`` as attributes for structured handlers::

        app.add_middleware(AccessLogMiddleware(logging.getLogger("myapp.access")))
    """

    __slots__ = ("_logger",)

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger

    async def __call__(self, request: Request, next: Next) -> Response:
        start = time.perf_counter()
        try:
            response = await next(request)
        except HTTPError as exc:
            self._log(request, exc.status, start)
            raise
        self._log(request, response.status, start)
        return response

    def _log(self, request: Request, status: int, start: float) -> None:
        duration_ms = (time.perf_counter() - start) * 1000
        self._logger.info(
            '%s "%s %s" %d %.2fms',
            request.client[0] if request.client else "-",
            request.method,
            request.url,
            status,
            duration_ms,
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
