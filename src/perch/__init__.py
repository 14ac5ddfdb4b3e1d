"""Perch: a small ASGI web framework with plugins and JWT auth.

::

    from perch import App

    app = App()

    @app.route("/")
    def index():
        return "Hello World!"

    @app.route("/{id}")
    def show(id: str):
        return f"Hello {id}!"

    app.run()

Protecting a route with a JWT::

    from perch.auth import JWTConfig, JWTStrategy

    app.auth_strategy("jwt", JWTStrategy(JWTConfig(key=SECRET)))

    @app.route("/restricted", auth="jwt")
    def restricted(credentials):
        return f"You used a token, {credentials['name']}"
"""

from importlib import import_module

__version__ = "0.1.0"

# Public name -> defining module, imported on first attribute access
_EXPORTS: dict[str, str] = {
    "App": "perch.app",
    "AppConfig": "perch.config",
    "AuthSpec": "perch.auth",
    "ConfigurationError": "perch.errors",
    "Credentials": "perch.auth",
    "Forbidden": "perch.errors",
    "HTTPError": "perch.errors",
    "MethodNotAllowed": "perch.errors",
    "Middleware": "perch.middleware.protocol",
    "Next": "perch.middleware.protocol",
    "NotFound": "perch.errors",
    "PerchError": "perch.errors",
    "Plugin": "perch.plugins.plugin",
    "Redirect": "perch.http.response",
    "Request": "perch.http.request",
    "Response": "perch.http.response",
    "Unauthorized": "perch.errors",
    "get_credentials": "perch.auth",
    "get_request": "perch.context",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> object:
    module = _EXPORTS.get(name)
    if module is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)
    return getattr(import_module(module), name)
