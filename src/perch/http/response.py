"""Response values handlers return, or that negotiation builds for them.

A ``Response`` never changes; every ``with_*`` call hands back a copy.
"""

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

HTML = "text/html; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Response:
    """Status, content type, extra headers, and a body.

    ``headers`` holds pairs in the order added; the sender adds
    ``content-type`` and ``content-length`` itself::

        Response("Created", status=201).with_header("Location", "/users/7")
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = HTML
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_content_type(self, content_type: str) -> Response:
        return replace(self, content_type=content_type)

    def with_header(self, name: str, value: str) -> Response:
        """Copy with one more header; an existing header of that name is kept."""
        return self.with_headers({name: value})

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        return replace(self, headers=self.headers + tuple(headers.items()))

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of header *name*, ignoring case."""
        name = name.lower()
        return next((v for k, v in self.headers if k.lower() == name), default)

    @property
    def body_bytes(self) -> bytes:
        """The body as sent on the wire (``str`` bodies are UTF-8 encoded)."""
        body = self.body
        return body.encode("utf-8") if isinstance(body, str) else body

    @property
    def text(self) -> str:
        body = self.body
        return body.decode("utf-8") if isinstance(body, bytes) else body

    def json(self) -> Any:
        """Parse the body as JSON (handy in tests)."""
        return json_module.loads(self.body_bytes)


@dataclass(frozen=True, slots=True)
class Redirect:
    """Return this from a handler to send the client elsewhere."""

    url: str
    status: int = 302
    headers: tuple[tuple[str, str], ...] = ()
