"""The shape every middleware has, and the ``Next`` it is handed.

Middleware wraps routing and the auth gate, so it sees 404, 405 and
401 outcomes as raised ``HTTPError`` exceptions, and can catch them.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from perch.http.request import Request
from perch.http.response import Response

# Calls the rest of the chain: later middleware, then routing and the handler
type Next = Callable[[Request], Awaitable[Response]]


class Middleware(Protocol):
    """Any ``async (request, next) -> Response`` callable.

    A plain function works, as does an object with ``__call__``::

        async def request_id(request: Request, next: Next) -> Response:
            response = await next(request)
            return response.with_header("X-Request-Id", uuid.uuid4().hex)

        app.add_middleware(request_id)
    """

    async def __call__(self, request: Request, next: Next) -> Response: ...
