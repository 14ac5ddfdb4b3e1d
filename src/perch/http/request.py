"""The request object handlers, middleware, and auth strategies receive.

Everything except the body is known when the request arrives and never
changes. Routing and the auth gate hand on copies made with
``with_match()`` and ``with_auth()``; all copies share one body cache,
so the ASGI body is consumed at most once.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import Any

from perch._internal.asgi import Receive
from perch.auth.credentials import ANONYMOUS, AuthState
from perch.errors import HTTPError
from perch.http.headers import Headers
from perch.http.query import QueryParams


def _charset(content_type: str | None) -> str:
    for part in (content_type or "").split(";")[1:]:
        name, _, value = part.strip().partition("=")
        if name.lower() == "charset" and value:
            return value.strip('"')
    return "utf-8"


@dataclass(frozen=True, slots=True)
class Request:
    """One HTTP request.

    ``auth`` is ``ANONYMOUS`` until the auth gate runs for a protected
    route. ``body_limit`` caps how many body bytes ``body()`` will read,
    so a client that streams without a ``Content-Length`` still gets a
    413 instead of filling memory.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    _receive: Receive

    auth: AuthState = ANONYMOUS
    route_name: str | None = None
    body_limit: int | None = None

    # Shared by every copy of this request
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_asgi(
        cls,
        scope: dict[str, Any],
        receive: Receive,
        *,
        body_limit: int | None = None,
    ) -> Request:
        """Build a Request from an ASGI ``http`` scope."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            path_params={},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
            body_limit=body_limit,
        )

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """``Content-Length`` as an int; ``None`` if absent or garbled."""
        value = self.headers.get("content-length")
        if value is None or not value.strip().isdigit():
            return None
        return int(value)

    @property
    def url(self) -> str:
        """Path and query string, as the client sent them."""
        if not self.query.raw:
            return self.path
        return f"{self.path}?{self.query.raw.decode('latin-1')}"

    def with_match(self, path_params: dict[str, str], route_name: str | None = None) -> Request:
        return replace(self, path_params=path_params, route_name=route_name)

    def with_auth(self, auth: AuthState) -> Request:
        return replace(self, auth=auth)

    async def stream(self) -> AsyncGenerator[bytes]:
        """Yield body chunks as they arrive, enforcing ``body_limit``."""
        received = 0
        more = True
        while more:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            more = message.get("more_body", False)
            received += len(chunk)
            if self.body_limit is not None and received > self.body_limit:
                raise HTTPError(status=413, detail="Payload Too Large")
            if chunk:
                yield chunk

    async def body(self) -> bytes:
        """The whole body, read once and cached."""
        cached = self._cache.get("body")
        if cached is None:
            cached = b"".join([chunk async for chunk in self.stream()])
            self._cache["body"] = cached
        return cached

    async def text(self) -> str:
        """The body decoded with the ``Content-Type`` charset (UTF-8 by default)."""
        return (await self.body()).decode(_charset(self.content_type))

    async def json(self) -> Any:
        """The body parsed as JSON.

        Raises ``HTTPError(400)`` for a body that is not valid JSON, so
        handlers need not turn client mistakes into responses themselves.
        """
        raw = await self.body()
        try:
            return json_module.loads(raw)
        except ValueError:
            raise HTTPError(status=400, detail="Malformed JSON body") from None
