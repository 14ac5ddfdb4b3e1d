"""Plugin definition and registration records."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.plugins.scope import PluginScope


@dataclass(frozen=True, slots=True)
class Plugin:
    """A named bundle of routes, middleware, and auth strategies.

    ``register`` receives a ``PluginScope`` and the registration options::

        def register(server, options):
            @server.route("/status")
            def status():
                return {"ok": True}

        status_plugin = Plugin("status", register, version="1.0.0")

    Attributes:
        name: Unique plugin name.
        register: ``(server, options) -> None`` setup function.
        version: Informational version string.
        dependencies: Plugin names that must also be registered.
        multiple: Allow registering this plugin more than once.
        once: Silently skip repeat registrations instead of raising.
    """

    name: str
    register: Callable[[PluginScope, Mapping[str, Any]], None]
    version: str = "0.0.0"
    dependencies: tuple[str, ...] = ()
    multiple: bool = False
    once: bool = False


@dataclass(slots=True)
class PluginRecord:
    """One registration of a plugin, kept by the registry."""

    name: str
    version: str
    options: Mapping[str, Any]
    prefix: str
    dependencies: tuple[str, ...] = ()
    exposed: dict[str, Any] = field(default_factory=dict)
