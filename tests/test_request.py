"""Tests for perch.http.request: immutable request and body access."""

import pytest

from perch.auth.credentials import ANONYMOUS, AuthState, Credentials
from perch.errors import HTTPError
from perch.http.request import Request


def _scope(**overrides) -> dict:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/items",
        "query_string": b"page=2",
        "headers": [(b"content-type", b"application/json"), (b"content-length", b"13")],
        "http_version": "1.1",
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 5000),
    }
    scope.update(overrides)
    return scope


def _receive_chunks(*chunks: bytes):
    queue = list(chunks)

    async def receive() -> dict:
        body = queue.pop(0)
        return {"type": "http.request", "body": body, "more_body": bool(queue)}

    return receive


class TestFromASGI:
    def test_metadata(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks(b""))
        assert req.method == "POST"
        assert req.path == "/items"
        assert req.query.get_int("page") == 2
        assert req.content_type == "application/json"
        assert req.content_length == 13
        assert req.client == ("127.0.0.1", 5000)
        assert req.url == "/items?page=2"

    def test_defaults(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks(b""))
        assert req.path_params == {}
        assert req.auth is ANONYMOUS
        assert req.route_name is None

    def test_bad_content_length(self) -> None:
        req = Request.from_asgi(
            _scope(headers=[(b"content-length", b"abc")]), _receive_chunks(b"")
        )
        assert req.content_length is None

    def test_url_without_query(self) -> None:
        req = Request.from_asgi(_scope(query_string=b""), _receive_chunks(b""))
        assert req.url == "/items"


class TestCopies:
    def test_with_match(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks(b""))
        matched = req.with_match({"id": "7"}, "item")
        assert matched.path_params == {"id": "7"}
        assert matched.route_name == "item"
        assert req.path_params == {}

    def test_with_auth(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks(b""))
        state = AuthState(credentials=Credentials(subject="1"), strategy="jwt", mode="required")
        authed = req.with_auth(state)
        assert authed.auth.is_authenticated
        assert not req.auth.is_authenticated


class TestBody:
    async def test_body_joins_chunks(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks(b'{"name":', b' "x"}'))
        assert await req.body() == b'{"name": "x"}'

    async def test_body_cached_across_copies(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks(b'{"a": 1}'))
        assert await req.json() == {"a": 1}
        copy = req.with_match({}, None)
        assert await copy.json() == {"a": 1}

    async def test_text(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks("héllo".encode()))
        assert await req.text() == "héllo"

    async def test_charset_from_content_type(self) -> None:
        scope = _scope(headers=[(b"content-type", b"text/plain; charset=latin-1")])
        req = Request.from_asgi(scope, _receive_chunks("café".encode("latin-1")))
        assert await req.text() == "café"

    async def test_malformed_json_is_400(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks(b"{nope"))
        with pytest.raises(HTTPError) as exc_info:
            await req.json()
        assert exc_info.value.status == 400

    async def test_body_limit_on_streamed_body(self) -> None:
        req = Request.from_asgi(_scope(), _receive_chunks(b"12345", b"67890"), body_limit=8)
        with pytest.raises(HTTPError) as exc_info:
            await req.body()
        assert exc_info.value.status == 413

    async def test_disconnect_ends_stream(self) -> None:
        async def receive() -> dict:
            return {"type": "http.disconnect"}

        req = Request.from_asgi(_scope(), receive)
        assert await req.body() == b""
