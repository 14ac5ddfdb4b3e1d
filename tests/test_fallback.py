"""Tests for perch.server.fallback: unhandled failure guard."""

import asyncio

from perch.server.fallback import UnhandledFailureGuard


class _FakeLoop:
    def __init__(self) -> None:
        self.handler = "previous"

    def get_exception_handler(self):
        return self.handler

    def set_exception_handler(self, handler) -> None:
        self.handler = handler


class TestGuard:
    def test_starts_clean(self) -> None:
        guard = UnhandledFailureGuard()
        assert not guard.failed
        assert guard.exit_status == 0

    def test_install_and_uninstall(self) -> None:
        loop = _FakeLoop()
        guard = UnhandledFailureGuard()
        guard.install(loop)  # type: ignore[arg-type]
        assert loop.handler == guard.handle
        guard.uninstall(loop)  # type: ignore[arg-type]
        assert loop.handler == "previous"

    def test_handle_logs_and_fails_once(self, caplog) -> None:
        shutdowns: list[int] = []
        loop = _FakeLoop()
        guard = UnhandledFailureGuard()
        guard.install(loop, on_failure=lambda: shutdowns.append(1))  # type: ignore[arg-type]

        first = RuntimeError("task exploded")
        with caplog.at_level("CRITICAL", logger="perch.server"):
            guard.handle(loop, {"message": "Task exception was never retrieved", "exception": first})  # type: ignore[arg-type]
            guard.handle(loop, {"message": "again", "exception": ValueError()})  # type: ignore[arg-type]

        assert guard.failure is first
        assert guard.exit_status == 1
        assert shutdowns == [1]
        assert "Task exception was never retrieved" in caplog.text
        assert "again" in caplog.text

    def test_handle_without_exception(self) -> None:
        guard = UnhandledFailureGuard()
        guard.handle(None, {"message": "socket gone"})  # type: ignore[arg-type]
        assert isinstance(guard.failure, RuntimeError)
        assert str(guard.failure) == "socket gone"

    def test_record(self) -> None:
        guard = UnhandledFailureGuard()
        guard.record(OSError("address in use"))
        assert guard.exit_status == 1

    async def test_real_loop_handler(self) -> None:
        loop = asyncio.get_running_loop()
        guard = UnhandledFailureGuard()
        guard.install(loop)
        try:
            loop.call_exception_handler({"message": "boom", "exception": KeyError("k")})
        finally:
            guard.uninstall(loop)
        assert isinstance(guard.failure, KeyError)
