"""Serving: runs a perch App under uvicorn.

``serve()`` is the awaitable form used by ``App.start()``; ``run_server()``
is the blocking form used by ``App.run()`` and ``perch run``. The
blocking form enters the event loop through ``anyio.run`` and installs
the unhandled failure fallback.
"""

import asyncio
import functools
import logging
from typing import Any

import anyio
import uvicorn

from perch.server.fallback import UnhandledFailureGuard

logger = logging.getLogger("perch.server")


async def serve(
    app: Any,
    host: str,
    port: int,
    *,
    log_level: str = "info",
    root_path: str = "",
    guard: UnhandledFailureGuard | None = None,
) -> None:
    """Serve *app* until shutdown is requested."""
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level,
        root_path=root_path,
        lifespan="on",
        log_config=None,
        server_header=False,
    )
    server = uvicorn.Server(config)

    loop = asyncio.get_running_loop()
    if guard is not None:
        guard.install(loop, on_failure=lambda: setattr(server, "should_exit", True))

    logger.info("Serving on http://%s:%d", host, port)
    try:
        await server.serve()
    finally:
        if guard is not None:
            guard.uninstall(loop)
    if not server.started:
        msg = "Server failed to start (see the startup error above)"
        raise RuntimeError(msg)
    logger.info("Server stopped")


def run_server(
    app: Any,
    host: str,
    port: int,
    *,
    log_level: str = "info",
    root_path: str = "",
) -> int:
    """Serve *app* in a fresh event loop; return the process exit status."""
    guard = UnhandledFailureGuard()
    try:
        anyio.run(
            functools.partial(
                serve,
                app,
                host,
                port,
                log_level=log_level,
                root_path=root_path,
                guard=guard,
            ),
            backend="asyncio",
        )
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except SystemExit as exc:
        # uvicorn exits this way when lifespan startup fails
        if exc.code not in (None, 0):
            guard.record(exc)
    except Exception as exc:
        guard.record(exc)
    return guard.exit_status
