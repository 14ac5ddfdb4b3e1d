"""Tutorial: routes, path parameters, a plugin, and a JWT-protected route.

Demonstrates:
- ``@app.route`` with static and ``{param}`` paths
- a plugin mounted under a prefix with options
- the ``jwt`` auth strategy with a ``validate`` callback
- a ``vercel.json`` descriptor (``perch deploy check``)

Get a token, then call the protected route::

    perch token --secret "$PERCH_SECRET" --claim id=1 --claim "name=Jen Jones"
    curl -H "Authorization: Bearer <token>" http://127.0.0.1:8000/restricted

Run:
    python app.py
"""

import os
from dataclasses import dataclass

from perch import App, AppConfig, Plugin
from perch.auth import JWTConfig, JWTStrategy

SECRET = os.environ.get("PERCH_SECRET", "NeverShareYourSecret-tutorial-only-key")


# ---------------------------------------------------------------------------
# In-memory "database"
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class User:
    id: int
    name: str


USERS: dict[int, User] = {
    1: User(id=1, name="Jen Jones"),
}


def validate(payload, request):
    """Accept the token only if it names a known user."""
    return payload.get("id") in USERS


# ---------------------------------------------------------------------------
# A plugin: health endpoints under a prefix
# ---------------------------------------------------------------------------


def _register_health(server, options):
    @server.get("/")
    def health():
        """Liveness probe."""
        return {"status": "ok", "service": options.get("service", "perch")}

    server.expose("path", server.prefix or "/")


health = Plugin("health", _register_health, version="1.0.0")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = App(AppConfig(access_log=True))
app.auth_strategy("jwt", JWTStrategy(JWTConfig(key=SECRET, validate=validate)))
app.register(health, prefix="/health", options={"service": "tutorial"})


@app.route("/")
def index():
    """Say hello."""
    return "Hello World!"


@app.route("/restricted", auth="jwt")
def restricted(credentials):
    """Only reachable with a valid token."""
    return f"You used a token, {credentials['name']}"


@app.route("/{id}")
def greet(id: str):
    """Greet whoever is named in the path."""
    return f"Hello {id}!"


if __name__ == "__main__":
    app.run()
