"""Auth events: what the auth gate decided, and for whom.

Every event is logged at DEBUG on ``perch.auth``. An application that
wants more (metrics, an audit table) installs one process-wide sink::

    set_auth_event_sink(lambda event: audit_log.append(event))

Event names: ``auth.success``, ``auth.token.missing``,
``auth.token.expired``, ``auth.token.invalid``, ``auth.scope.denied``.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import Any

logger = logging.getLogger("perch.auth")


@dataclass(frozen=True, slots=True)
class AuthEvent:
    name: str
    path: str | None = None
    method: str | None = None
    subject: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    at: float = field(default_factory=time)


type AuthEventSink = Callable[[AuthEvent], None]

_lock = threading.Lock()
_sinks: list[AuthEventSink] = []


def set_auth_event_sink(sink: AuthEventSink | None) -> None:
    """Replace the sink; ``None`` stops delivery (logging continues)."""
    with _lock:
        _sinks[:] = [sink] if sink is not None else []


def emit_auth_event(
    name: str,
    *,
    request: Any = None,
    subject: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    event = AuthEvent(
        name,
        path=getattr(request, "path", None),
        method=getattr(request, "method", None),
        subject=subject,
        details=details or {},
    )
    logger.debug(
        "%s %s %s subject=%s %s", name, event.method, event.path, subject, event.details or ""
    )
    with _lock:
        sinks = tuple(_sinks)
    for sink in sinks:
        sink(event)
