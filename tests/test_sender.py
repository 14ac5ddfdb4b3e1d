"""Tests for perch.server.sender: ASGI response emission rules."""

from perch.http.response import Response
from perch.server.sender import send_response


class _Recorder:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def headers(self) -> dict[bytes, bytes]:
        return dict(self.messages[0]["headers"])


class TestSendResponse:
    async def test_basic(self) -> None:
        send = _Recorder()
        await send_response(Response("hello"), send)
        assert send.messages[0]["status"] == 200
        assert send.headers[b"content-type"] == b"text/html; charset=utf-8"
        assert send.headers[b"content-length"] == b"5"
        assert send.messages[1]["body"] == b"hello"

    async def test_header_names_lowercased(self) -> None:
        send = _Recorder()
        await send_response(Response("x").with_header("X-Trace", "abc"), send)
        assert send.headers[b"x-trace"] == b"abc"

    async def test_204_drops_body(self) -> None:
        send = _Recorder()
        await send_response(Response("unexpected").with_status(204), send)
        assert send.headers[b"content-length"] == b"0"
        assert b"content-type" not in send.headers
        assert send.messages[1]["body"] == b""

    async def test_304_drops_body(self) -> None:
        send = _Recorder()
        await send_response(Response("unexpected").with_status(304), send)
        assert send.messages[1]["body"] == b""

    async def test_head_keeps_length_drops_body(self) -> None:
        send = _Recorder()
        await send_response(Response("hello"), send, head=True)
        assert send.headers[b"content-length"] == b"5"
        assert send.messages[1]["body"] == b""

    async def test_server_header(self) -> None:
        send = _Recorder()
        await send_response(Response("x"), send, server_header="perch")
        assert send.headers[b"server"] == b"perch"

    async def test_no_server_header_by_default(self) -> None:
        send = _Recorder()
        await send_response(Response("x"), send)
        assert b"server" not in send.headers
