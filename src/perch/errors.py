"""Exceptions raised by perch.

Two families: ``ConfigurationError`` for mistakes found while an app is
being set up or compiled, and ``HTTPError`` for outcomes that become an
error response.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Bad setup: a route pattern, an auth reference, a plugin, a descriptor.

    Surfaces at registration or when the app compiles, never per request.
    """


class PluginError(ConfigurationError):
    """A plugin's ``register`` function raised."""

    def __init__(self, plugin: str, cause: BaseException) -> None:
        self.plugin = plugin
        self.cause = cause
        super().__init__(f"Plugin {plugin!r} failed to register: {cause}")


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """Raise from anywhere in request handling to answer with *status*.

    ``headers`` are added to whatever response is finally sent, including
    one produced by an ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: route exists but not for this HTTP method.

    Carries an ``Allow`` header; the detail lists the same methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class Unauthorized(HTTPError):  # noqa: N818
    """401: the route requires authentication and none was accepted.

    When *error* is given, a ``WWW-Authenticate`` challenge naming the
    scheme and error is attached, e.g. ``Bearer error="Token expired"``.
    """

    def __init__(
        self,
        detail: str = "Missing authentication",
        *,
        scheme: str = "Bearer",
        error: str | None = None,
    ) -> None:
        challenge = f'{scheme} error="{error}"' if error else scheme
        super().__init__(
            status=401,
            detail=detail,
            headers=(("WWW-Authenticate", challenge),),
        )


class Forbidden(HTTPError):  # noqa: N818
    """403: authenticated, but the credentials lack a required scope."""

    def __init__(self, detail: str = "Insufficient scope") -> None:
        super().__init__(status=403, detail=detail)
