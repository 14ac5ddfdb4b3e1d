"""ASGI response sending: translates perch Responses to ASGI messages."""

from perch._internal.asgi import Send
from perch.http.response import Response


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(
    response: Response,
    send: Send,
    *,
    head: bool = False,
    server_header: str | None = None,
) -> None:
    """Translate a perch Response into ASGI send() calls.

    For ``HEAD`` requests the headers (including ``content-length``)
    describe the body that a ``GET`` would have sent, but no body is sent.
    """
    raw_headers: list[tuple[bytes, bytes]] = []
    body = response.body_bytes if _body_allowed(response.status) else b""
    if _body_allowed(response.status):
        raw_headers.append((b"content-type", response.content_type.encode("latin-1")))
    for name, value in response.headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    if server_header:
        raw_headers.append((b"server", server_header.encode("latin-1")))
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )
