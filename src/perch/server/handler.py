"""Turn one ASGI ``http`` connection into a perch ``Request`` and back.

Order of work for every request::

    middleware (first added outermost)
      -> Content-Length check
      -> router match
      -> auth gate (protected routes only)
      -> handler call and return-value negotiation

``HTTPError`` raised anywhere in that chain becomes an error response;
any other exception becomes a 500.
"""

import inspect
from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.auth.credentials import ANONYMOUS
from perch.auth.strategy import AuthRegistry, authenticate, bind_auth, reset_auth
from perch.context import request_var
from perch.errors import HTTPError
from perch.http.query import TRUTHY
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Middleware, Next
from perch.routing.params import convert_param
from perch.routing.route import RouteMatch
from perch.routing.router import Router
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.negotiation import negotiate
from perch.server.sender import send_response


def _link(mw: Middleware, call_next: Next) -> Next:
    async def step(request: Request) -> Response:
        return await mw(request, call_next)

    return step


def _chain(middleware: tuple[Middleware, ...], endpoint: Next) -> Next:
    call_next = endpoint
    for mw in reversed(middleware):
        call_next = _link(mw, call_next)
    return call_next


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Middleware, ...],
    error_handlers: dict[int | type, Callable[..., Any]],
    auth: AuthRegistry,
    debug: bool,
    max_content_length: int | None = None,
    server_header: str | None = None,
) -> None:
    request = Request.from_asgi(scope, receive, body_limit=max_content_length)

    async def dispatch(req: Request) -> Response:
        declared = req.content_length
        if max_content_length is not None and declared is not None and declared > max_content_length:
            raise HTTPError(status=413, detail="Payload Too Large")

        match = router.match(req.method, req.path)
        req = req.with_match(match.path_params, match.route.name)

        if match.route.auth is not None:
            state = await authenticate(req, match.route.auth, auth, scope=match.route.scope)
            req = req.with_auth(state)
            bind_auth(state)

        result = await invoke(match.route.handler, **_handler_kwargs(req, match))
        return negotiate(result)

    request_token = request_var.set(request)
    auth_token = bind_auth(ANONYMOUS)
    try:
        response = await _chain(middleware, dispatch)(request)
    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers, debug)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)
    finally:
        reset_auth(auth_token)
        request_var.reset(request_token)

    await send_response(
        response,
        send,
        head=request.method == "HEAD",
        server_header=server_header,
    )


def _handler_kwargs(request: Request, match: RouteMatch) -> dict[str, Any]:
    """Fill the handler's parameters by name.

    ``request`` (or anything annotated ``Request``) gets the request,
    ``credentials`` gets what the auth gate verified, and path
    parameters get their converted values. Other parameters are left to
    their defaults.
    """
    kwargs: dict[str, Any] = {}
    signature = match.route.signature
    if signature is None:
        signature = inspect.signature(match.route.handler, eval_str=True)
    for name, param in signature.parameters.items():
        if name == "request" or param.annotation is Request:
            kwargs[name] = request
        elif name == "credentials":
            kwargs[name] = request.auth.credentials
        elif name in match.path_params:
            kwargs[name] = _coerce(
                name,
                match.path_params[name],
                match.param_types.get(name, "str"),
                param.annotation,
            )
    return kwargs


def _coerce(name: str, raw: str, converter: str, annotation: Any) -> Any:
    # Typed converters already validated the segment while matching
    if converter != "str":
        return convert_param(raw, converter)
    if annotation is inspect.Parameter.empty or annotation is str or not isinstance(annotation, type):
        return raw
    if annotation is bool:
        return raw.lower() in TRUTHY
    try:
        return annotation(raw)
    except (TypeError, ValueError):
        raise HTTPError(
            status=400,
            detail=f"Invalid value for path parameter {name!r}: {raw!r}",
        ) from None
