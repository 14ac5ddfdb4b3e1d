"""The ``App`` object: where routes, auth, plugins, and middleware meet.

An app has two lives. While the module that builds it is importing,
everything is mutable and decorators record what they are given. The
first request, lifespan startup, ``TestClient`` entry, or ``routes``
lookup compiles those records into a router and a middleware tuple;
from then on the app is read-only and any further setup call raises
``RuntimeError``.
"""

import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch._internal.types import ErrorHandler, Handler, Hook
from perch.auth.strategy import AuthRegistry, AuthStrategy, RouteAuth
from perch.config import AppConfig
from perch.errors import ConfigurationError, PluginError
from perch.middleware.protocol import Middleware
from perch.plugins.loader import coerce_plugin
from perch.plugins.plugin import Plugin, PluginRecord
from perch.plugins.registry import PluginRegistry
from perch.plugins.scope import PluginScope, normalize_prefix
from perch.routing.route import Route
from perch.routing.router import Router
from perch.server.handler import handle_request

logger = logging.getLogger("perch.server")

type Phase = Literal["startup", "shutdown"]


@dataclass(slots=True)
class _RouteSpec:
    """What ``@app.route`` recorded; turned into a ``Route`` at freeze."""

    path: str
    handler: Handler
    methods: list[str] | None
    name: str | None
    auth: RouteAuth = None
    scope: tuple[str, ...] = ()
    plugin: str | None = None
    description: str = ""

    def build(self, auth: AuthRegistry) -> Route:
        spec = auth.resolve(self.auth)
        if self.scope and spec is None:
            msg = (
                f"Route {self.path!r} requires scope {list(self.scope)} but no auth "
                "strategy protects it; pass auth= or set default_auth()."
            )
            raise ConfigurationError(msg)
        return Route(
            path=self.path,
            handler=self.handler,
            methods=frozenset(m.upper() for m in self.methods or ["GET"]),
            name=self.name,
            auth=spec,
            scope=self.scope,
            plugin=self.plugin,
            description=self.description,
            signature=inspect.signature(self.handler, eval_str=True),
        )


def _summary(func: Callable[..., Any]) -> str:
    return (inspect.getdoc(func) or "").partition("\n")[0]


class App:
    """A perch web application, callable as an ASGI 3.0 app.

    ::

        app = App()

        @app.route("/")
        def index():
            return "Hello World!"

        @app.route("/restricted", auth="jwt")
        def restricted(credentials):
            return f"You used a token, {credentials['name']}"

        app.run()

    Compilation happens once. Worker threads that race on their first
    request serialize on a lock and re-check the flag, so only one of
    them builds the router.
    """

    __slots__ = (
        "_auth",
        "_compiled_middleware",
        "_error_handlers",
        "_frozen",
        "_hooks",
        "_lock",
        "_plugins",
        "_route_specs",
        "_router",
        "_user_middleware",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()
        self._route_specs: list[_RouteSpec] = []
        self._user_middleware: list[Middleware] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._hooks: dict[Phase, list[Hook]] = {"startup": [], "shutdown": []}
        self._auth = AuthRegistry()
        self._plugins = PluginRegistry()
        self._lock = threading.Lock()
        self._frozen = False
        self._router: Router | None = None
        self._compiled_middleware: tuple[Middleware, ...] = ()

    # Routes

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
        """Decorator that maps *path* to the decorated handler.

        Args:
            path: ``/users/{id}`` style pattern. ``{id:int}`` and
                ``{id:float}`` convert the segment; ``{rest*}`` takes
                everything after it, slashes included.
            methods: Defaults to ``["GET"]``. ``"*"`` accepts any method
                no other route at this path claims.
            name: Recorded on the request as ``route_name``.
            auth: A strategy name, a list of names, an ``AuthSpec``, or
                ``False`` to skip the app-wide ``default_auth()``.
            scope: The credentials must carry one of these scopes.
            description: Shown by ``perch routes``; the handler docstring's
                first line when empty.
        """
        return self._add_route(
            path,
            methods=methods,
            name=name,
            auth=auth,
            scope=scope,
            description=description,
        )

    def get(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["GET"], **kwargs)

    def post(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["POST"], **kwargs)

    def put(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["PUT"], **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["DELETE"], **kwargs)

    def _add_route(
        self,
        path: str,
        *,
        methods: list[str] | None,
        name: str | None,
        auth: RouteAuth,
        scope: tuple[str, ...],
        description: str,
        plugin: str | None = None,
    ) -> Callable[[Handler], Handler]:
        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            spec = _RouteSpec(
                path,
                func,
                methods,
                name,
                auth=auth,
                scope=tuple(scope),
                plugin=plugin,
                description=description or _summary(func),
            )
            self._route_specs.append(spec)
            return func

        return decorator

    @property
    def routes(self) -> list[Route]:
        """Compiled routes, in registration order. Freezes the app."""
        return self._compiled_router().routes

    # Auth

    def auth_strategy(self, name: str, strategy: AuthStrategy) -> None:
        """Make *strategy* available to routes as ``auth=name``::

            app.auth_strategy("jwt", JWTStrategy(JWTConfig(key=SECRET)))
        """
        self._check_not_frozen()
        self._auth.strategy(name, strategy)

    def default_auth(self, auth: RouteAuth) -> None:
        """Protect every route that does not say otherwise with *auth*."""
        self._check_not_frozen()
        self._auth.default(auth)

    # Plugins

    def register(
        self,
        plugin: Plugin | str | Any,
        *,
        options: Mapping[str, Any] | None = None,
        prefix: str | None = None,
    ) -> None:
        """Run a plugin's ``register`` against a scope bound to *prefix*.

        *plugin* is a ``Plugin``, something with a ``plugin`` attribute
        (usually a module), or a ``"package.module:attr"`` string.
        Registering a name again raises ``ConfigurationError`` unless the
        plugin is ``multiple`` (registered again) or ``once`` (skipped).
        A plugin whose ``register`` raises leaves nothing behind: its
        record, routes, middleware, hooks and strategies are removed
        before ``PluginError`` propagates.

        ::

            app.register(users, prefix="/users", options={"page_size": 20})
            app.register("myapp.plugins.health")
        """
        self._check_not_frozen()
        resolved = coerce_plugin(plugin)
        if not self._plugins.admit(resolved):
            return

        record = PluginRecord(
            name=resolved.name,
            version=resolved.version,
            options=MappingProxyType(dict(options or {})),
            prefix=normalize_prefix(prefix),
            dependencies=resolved.dependencies,
        )
        rollback = self._checkpoint()
        self._plugins.add(record)
        try:
            resolved.register(PluginScope(self, record), record.options)
        except PluginError:
            rollback()
            raise
        except Exception as exc:
            rollback()
            raise PluginError(resolved.name, exc) from exc

    @property
    def plugins(self) -> PluginRegistry:
        return self._plugins

    def _checkpoint(self) -> Callable[[], None]:
        """Capture setup state; the returned callable restores it."""
        routes = len(self._route_specs)
        middleware = len(self._user_middleware)
        hooks = {phase: len(funcs) for phase, funcs in self._hooks.items()}
        error_handlers = dict(self._error_handlers)
        plugins = self._plugins.snapshot()
        auth = self._auth.snapshot()

        def rollback() -> None:
            del self._route_specs[routes:]
            del self._user_middleware[middleware:]
            for phase, count in hooks.items():
                del self._hooks[phase][count:]
            self._error_handlers.clear()
            self._error_handlers.update(error_handlers)
            self._plugins.restore(plugins)
            self._auth.restore(auth)

        return rollback

    # Errors, middleware, hooks

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Decorator for a handler that renders a status code or exception type."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    def add_middleware(self, middleware: Middleware) -> None:
        """Append *middleware*; the earliest added wraps all the others."""
        self._check_not_frozen()
        self._user_middleware.append(middleware)

    def on_startup(self, func: Hook) -> Hook:
        """Run *func* (sync or async) at lifespan startup, in registration order."""
        return self._add_hook("startup", func)

    def on_shutdown(self, func: Hook) -> Hook:
        return self._add_hook("shutdown", func)

    def _add_hook(self, phase: Phase, func: Hook) -> Hook:
        self._check_not_frozen()
        self._hooks[phase].append(func)
        return func

    async def _run_hooks(self, phase: Phase) -> None:
        for hook in self._hooks[phase]:
            await invoke(hook)

    # Serving

    async def start(self, host: str | None = None, port: int | None = None) -> None:
        """Serve on the current event loop until the server shuts down."""
        from perch.server.serve import serve

        self._ensure_frozen()
        await serve(
            self,
            self.config.host if host is None else host,
            self.config.port if port is None else port,
            log_level=self.config.log_level,
            root_path=self.config.root_path,
        )

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve until interrupted.

        Setup errors surface here, before the socket is bound. A server
        that stops on an unhandled failure exits the process with 1.
        """
        from perch.server.serve import run_server

        self._ensure_frozen()
        status = run_server(
            self,
            self.config.host if host is None else host,
            self.config.port if port is None else port,
            log_level=self.config.log_level,
            root_path=self.config.root_path,
        )
        if status:
            raise SystemExit(status)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        match scope["type"]:
            case "lifespan":
                await self._lifespan(receive, send)
            case "http":
                await handle_request(
                    scope,
                    receive,
                    send,
                    router=self._compiled_router(),
                    middleware=self._compiled_middleware,
                    error_handlers=self._error_handlers,
                    auth=self._auth,
                    debug=self.config.debug,
                    max_content_length=self.config.max_content_length,
                    server_header=self.config.server_header,
                )
            case other:
                logger.debug("Ignoring unsupported ASGI scope type %r", other)

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        """Answer the server's lifespan messages until shutdown completes.

        Startup compiles the app, so configuration errors fail the
        server's startup instead of the first request.
        """
        while True:
            message = await receive()
            match message["type"]:
                case "lifespan.startup":
                    try:
                        self._ensure_frozen()
                        await self._run_hooks("startup")
                    except Exception as exc:
                        logger.exception("Startup failed")
                        await send({"type": "lifespan.startup.failed", "message": str(exc)})
                        return
                    await send({"type": "lifespan.startup.complete"})
                case "lifespan.shutdown":
                    try:
                        await self._run_hooks("shutdown")
                    except Exception as exc:
                        logger.exception("Shutdown failed")
                        await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                        return
                    await send({"type": "lifespan.shutdown.complete"})
                    return

    # Freezing

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._lock:
            if not self._frozen:
                self._freeze()

    def _compiled_router(self) -> Router:
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    def _freeze(self) -> None:
        # Caller holds self._lock
        self._plugins.check_dependencies()

        router = Router()
        for spec in self._route_specs:
            router.add(spec.build(self._auth))
        router.compile()

        chain = list(self._user_middleware)
        if self.config.access_log:
            from perch.middleware.access_log import AccessLogMiddleware

            chain.insert(0, AccessLogMiddleware())

        self._router = router
        self._compiled_middleware = tuple(chain)
        self._frozen = True
        logger.debug(
            "Compiled %d routes, %d middleware, %d plugins",
            len(router.routes),
            len(chain),
            len(self._plugins),
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "The app is already serving; routes, plugins, auth and middleware "
                "must be registered before the first request."
            )
            raise RuntimeError(msg)
