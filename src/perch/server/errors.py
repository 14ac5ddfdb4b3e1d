"""Rendering failures as responses.

Two entry points, one per failure kind: ``handle_http_error`` for an
``HTTPError`` raised on purpose (404, 405, 401, 403, 413, ...) and
``handle_internal_error`` for anything else, which is always a 500
unless an app error handler decides otherwise.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.server.negotiation import json_response, negotiate

logger = logging.getLogger("perch.server")

type ErrorHandlers = dict[int | type, Callable[..., Any]]

_PLAIN = "text/plain; charset=utf-8"


def default_error_response(request: Request, status: int, detail: str) -> Response:
    """The body used when no app handler claims an error.

    JSON clients (``Accept`` names ``application/json`` but not HTML)
    get ``{"statusCode": ..., "message": ...}``; everyone else plain text.
    """
    accept = request.headers.get("accept", "")
    if "application/json" in accept and "text/html" not in accept:
        return json_response({"statusCode": status, "message": detail}, status=status)
    return Response(body=detail, status=status, content_type=_PLAIN)


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> Response:
    """Call *handler* with as many of ``(request, exc)`` as it declares."""
    arity = len(inspect.signature(handler).parameters)
    result = await invoke(handler, *(request, exc)[: min(arity, 2)])
    return negotiate(result)


async def _render(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
    status: int,
) -> Response:
    """Run an app error handler; a handler that fails itself yields a plain 500."""
    try:
        response = await call_error_handler(handler, request, exc)
    except Exception:
        logger.exception("Error handler for %s %s failed", request.method, request.path)
        return default_error_response(request, 500, "Internal Server Error")
    # A handler that returned a bare body keeps the error's status
    return response.with_status(status) if response.status == 200 else response


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: ErrorHandlers,
    debug: bool,
) -> Response:
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is None:
        if debug and exc.detail:
            message = f"{exc.status}: {exc.detail}"
        else:
            message = exc.detail or f"Error {exc.status}"
        response = default_error_response(request, exc.status, message)
    else:
        response = await _render(handler, request, exc, exc.status)

    # Challenges and Allow survive custom handlers
    for name, value in exc.headers:
        if response.header(name) is None:
            response = response.with_header(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: ErrorHandlers,
    debug: bool,
) -> Response:
    """Log *exc* with its traceback and answer 500.

    Handlers registered for the exception's class (or a base class) are
    tried before one registered for 500.
    """
    logger.exception("500 %s %s", request.method, request.path)

    handler = next(
        (error_handlers[cls] for cls in type(exc).__mro__ if cls in error_handlers),
        error_handlers.get(500),
    )
    if handler is not None:
        return await _render(handler, request, exc, 500)

    if debug:
        return default_error_response(
            request, 500, f"Internal Server Error: {type(exc).__name__}: {exc}"
        )
    return default_error_response(request, 500, "Internal Server Error")
