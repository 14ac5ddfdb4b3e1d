"""The current request, reachable from anywhere inside a handler call.

Set by the handler pipeline before the middleware chain runs and reset
once the response is built. Auth state has its own variable; see
``perch.auth.get_auth``.
"""

from contextvars import ContextVar

from perch.http.request import Request

request_var: ContextVar[Request] = ContextVar("perch_request")


def get_request() -> Request:
    """The request being handled. ``LookupError`` outside a request."""
    return request_var.get()
