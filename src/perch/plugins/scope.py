"""The server facade handed to a plugin's ``register`` function.

Routes registered through a scope are prefixed with the registration
prefix and tagged with the plugin's name. Everything else delegates to
the app, so strategies and middleware a plugin adds are app-wide.
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from perch._internal.types import Handler, Hook
from perch.errors import ConfigurationError
from perch.plugins.plugin import PluginRecord

if TYPE_CHECKING:
    from perch.app import App
    from perch.auth.strategy import AuthStrategy, RouteAuth
    from perch.middleware.protocol import Middleware
    from perch.plugins.plugin import Plugin


def normalize_prefix(prefix: str | None) -> str:
    """Validate a route prefix: ``""`` or ``"/x"`` with no trailing slash."""
    if not prefix or prefix == "/":
        return ""
    if not prefix.startswith("/"):
        msg = f"Plugin prefix {prefix!r} must start with '/'."
        raise ConfigurationError(msg)
    return prefix.rstrip("/")


def join_paths(prefix: str, path: str) -> str:
    """Join a normalized prefix and a route path."""
    if not prefix:
        return path
    if path in ("", "/"):
        return prefix
    return f"{prefix}/{path.lstrip('/')}"


class PluginScope:
    """What a plugin sees as ``server`` inside ``register(server, options)``."""

    __slots__ = ("_app", "_record")

    def __init__(self, app: App, record: PluginRecord) -> None:
        self._app = app
        self._record = record

    @property
    def name(self) -> str:
        return self._record.name

    @property
    def prefix(self) -> str:
        return self._record.prefix

    @property
    def options(self) -> Mapping[str, Any]:
        return self._record.options

    @property
    def app(self) -> App:
        return self._app

    # -- Routes --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
        auth: RouteAuth = None,
        scope: tuple[str, ...] = (),
        description: str = "",
    ) -> Callable[[Handler], Handler]:
        """Register a plugin route via decorator (path gets the prefix)."""
        return self._app._add_route(
            join_paths(self.prefix, path),
            methods=methods,
            name=name,
            auth=auth,
            scope=scope,
            description=description,
            plugin=self.name,
        )

    def get(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["GET"], **kwargs)

    def post(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["POST"], **kwargs)

    def put(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["PUT"], **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["DELETE"], **kwargs)

    # -- Delegation --

    def add_middleware(self, middleware: Middleware) -> None:
        self._app.add_middleware(middleware)

    def auth_strategy(self, name: str, strategy: AuthStrategy) -> None:
        self._app.auth_strategy(name, strategy)

    def default_auth(self, auth: RouteAuth) -> None:
        self._app.default_auth(auth)

    def on_startup(self, func: Hook) -> Hook:
        return self._app.on_startup(func)

    def on_shutdown(self, func: Hook) -> Hook:
        return self._app.on_shutdown(func)

    def register(
        self,
        plugin: Plugin | Any,
        *,
        options: Mapping[str, Any] | None = None,
        prefix: str | None = None,
    ) -> None:
        """Register a nested plugin; its prefix is appended to this one."""
        nested = join_paths(self.prefix, normalize_prefix(prefix)) if prefix else self.prefix
        self._app.register(plugin, options=options, prefix=nested or None)

    def expose(self, key: str, value: Any) -> None:
        """Publish *value* as ``app.plugins[name].exposed[key]``."""
        self._record.exposed[key] = value
