"""Process-wide fallback for failures nothing else handled.

Request errors never get here: the handler pipeline turns them into
500 responses. This catches what escapes a request entirely (a task
that was never awaited, a failing lifecycle hook, a crash inside the
server itself), logs it, and makes ``App.run()`` exit with status 1.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("perch.server")


class UnhandledFailureGuard:
    """Log unhandled failures and request a shutdown.

    Installed as the event loop's exception handler while serving::

        guard = UnhandledFailureGuard()
        guard.install(loop, on_failure=lambda: setattr(server, "should_exit", True))
        ...
        raise SystemExit(guard.exit_status)

    Only the first failure triggers ``on_failure``; every failure is logged.
    """

    __slots__ = ("_on_failure", "_previous", "failure")

    def __init__(self) -> None:
        self.failure: BaseException | None = None
        self._on_failure: Callable[[], None] | None = None
        self._previous: Any = None

    @property
    def failed(self) -> bool:
        return self.failure is not None

    @property
    def exit_status(self) -> int:
        return 1 if self.failed else 0

    def install(
        self,
        loop: asyncio.AbstractEventLoop,
        *,
        on_failure: Callable[[], None] | None = None,
    ) -> None:
        """Become *loop*'s exception handler."""
        self._on_failure = on_failure
        self._previous = loop.get_exception_handler()
        loop.set_exception_handler(self.handle)

    def uninstall(self, loop: asyncio.AbstractEventLoop) -> None:
        """Restore the handler that was active before ``install``."""
        loop.set_exception_handler(self._previous)
        self._on_failure = None

    def handle(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        """Event loop exception handler entry point."""
        exc = context.get("exception")
        message = context.get("message") or "Unhandled exception in event loop"
        logger.critical("Unhandled failure: %s", message, exc_info=exc)
        self._fail(exc if exc is not None else RuntimeError(message))

    def record(self, exc: BaseException) -> None:
        """Record a failure that escaped the server coroutine itself."""
        logger.critical("Server stopped on unhandled failure: %s", exc, exc_info=exc)
        self._fail(exc)

    def _fail(self, exc: BaseException) -> None:
        if self.failure is not None:
            return
        self.failure = exc
        if self._on_failure is not None:
            self._on_failure()
