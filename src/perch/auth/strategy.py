"""Auth strategies, route auth specs, and the pre-handler gate.

A strategy turns a request into ``Credentials``. Strategies are
registered under a name; routes refer to them by name::

    app.auth_strategy("jwt", JWTStrategy(JWTConfig(key="...")))

    @app.route("/restricted", auth="jwt")
    def restricted(credentials):
        ...

The gate runs after routing and before the handler. Its outcome is
attached to ``request.auth`` and readable through ``get_auth()`` /
``get_credentials()`` for the rest of the request.

Modes:
    required -- no credentials or bad credentials: 401, handler never runs
    optional -- no credentials: handler runs anonymous; bad credentials: 401
    try      -- handler always runs; bad credentials leave ``auth.error`` set
"""

from collections.abc import Iterable, Mapping
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

from perch.auth.audit import emit_auth_event
from perch.auth.credentials import AuthState, Credentials
from perch.errors import ConfigurationError, Forbidden, Unauthorized

if TYPE_CHECKING:
    from perch.http.request import Request

type AuthMode = Literal["required", "optional", "try"]

MODES: frozenset[str] = frozenset({"required", "optional", "try"})


@runtime_checkable
class AuthStrategy(Protocol):
    """Protocol for auth strategies.

    ``authenticate`` returns ``None`` when the request carries no
    credentials for this strategy, and raises ``Unauthorized`` when it
    carries credentials that are not acceptable.
    """

    scheme: str

    async def authenticate(self, request: Request) -> Credentials | None: ...


@dataclass(frozen=True, slots=True)
class AuthSpec:
    """A route's auth requirement: which strategies, and how strictly."""

    strategies: tuple[str, ...]
    mode: AuthMode = "required"

    def __post_init__(self) -> None:
        if not self.strategies:
            msg = "AuthSpec needs at least one strategy name."
            raise ConfigurationError(msg)
        if self.mode not in MODES:
            msg = f"Unknown auth mode {self.mode!r} (expected one of {sorted(MODES)})."
            raise ConfigurationError(msg)

    @classmethod
    def of(cls, *strategies: str, mode: AuthMode = "required") -> AuthSpec:
        return cls(tuple(strategies), mode)


type RouteAuth = AuthSpec | str | Iterable[str] | bool | None


class AuthRegistry:
    """Named strategies plus an optional server-wide default.

    Mutable during setup; ``resolve`` is called for every route at
    freeze time so unknown strategy names fail at startup.
    """

    __slots__ = ("_default", "_strategies")

    def __init__(self) -> None:
        self._strategies: dict[str, AuthStrategy] = {}
        self._default: AuthSpec | None = None

    def strategy(self, name: str, impl: AuthStrategy) -> None:
        """Register *impl* under *name*."""
        if name in self._strategies:
            msg = f"Auth strategy {name!r} is already registered."
            raise ConfigurationError(msg)
        if not isinstance(impl, AuthStrategy):
            msg = f"Auth strategy {name!r} must define 'scheme' and 'authenticate(request)'."
            raise ConfigurationError(msg)
        self._strategies[name] = impl

    def default(self, auth: RouteAuth) -> None:
        """Apply *auth* to every route that does not set its own."""
        self._default = self._normalize(auth)

    def snapshot(self) -> tuple[dict[str, AuthStrategy], AuthSpec | None]:
        return dict(self._strategies), self._default

    def restore(self, snapshot: tuple[dict[str, AuthStrategy], AuthSpec | None]) -> None:
        strategies, self._default = snapshot
        self._strategies = dict(strategies)

    def __contains__(self, name: object) -> bool:
        return name in self._strategies

    def __getitem__(self, name: str) -> AuthStrategy:
        return self._strategies[name]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._strategies)

    def resolve(self, auth: RouteAuth) -> AuthSpec | None:
        """Resolve a route's ``auth=`` argument against the default.

        ``None`` inherits the default, ``False`` opts out, anything else
        is normalized to an ``AuthSpec``. Raises ``ConfigurationError``
        for unregistered strategy names.
        """
        spec = self._default if auth is None else self._normalize(auth)
        if spec is None:
            return None
        for name in spec.strategies:
            if name not in self._strategies:
                known = ", ".join(sorted(self._strategies)) or "none registered"
                msg = f"Unknown auth strategy {name!r} (known: {known})."
                raise ConfigurationError(msg)
        return spec

    @staticmethod
    def _normalize(auth: RouteAuth) -> AuthSpec | None:
        match auth:
            case None | False:
                return None
            case True:
                msg = "auth=True is ambiguous; name the strategy, e.g. auth='jwt'."
                raise ConfigurationError(msg)
            case AuthSpec():
                return auth
            case str():
                return AuthSpec.of(auth)
            case Mapping():
                msg = "Pass an AuthSpec instead of a mapping for route auth."
                raise ConfigurationError(msg)
            case _:
                return AuthSpec(tuple(auth))


# ---------------------------------------------------------------------------
# Request-scoped auth state
# ---------------------------------------------------------------------------

_auth_var: ContextVar[AuthState] = ContextVar("perch_auth")


def get_auth() -> AuthState:
    """Return the auth outcome for the current request.

    Raises ``LookupError`` outside a request.
    """
    try:
        return _auth_var.get()
    except LookupError:
        msg = "No auth context. get_auth() only works while handling a request."
        raise LookupError(msg) from None


def get_credentials() -> Credentials | None:
    """Return the current request's credentials, or ``None`` if anonymous."""
    return get_auth().credentials


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


def _has_scope(credentials: Credentials, required: Iterable[str]) -> bool:
    return any(s in credentials.scope for s in required)


async def authenticate(
    request: Request,
    spec: AuthSpec,
    registry: AuthRegistry,
    *,
    scope: tuple[str, ...] = (),
) -> AuthState:
    """Run the auth gate for one request.

    Tries each strategy in order; the first to return credentials wins.
    Raises ``Unauthorized`` or ``Forbidden`` according to the mode. A
    route that lists scopes always needs credentials, whatever the mode.
    """
    failure: Unauthorized | None = None
    for name in spec.strategies:
        strategy = registry[name]
        try:
            credentials = await strategy.authenticate(request)
        except Unauthorized as exc:
            failure = exc
            continue
        if credentials is None:
            continue

        credentials = replace(credentials, strategy=name)
        if scope and not _has_scope(credentials, scope):
            emit_auth_event(
                "auth.scope.denied",
                request=request,
                subject=credentials.subject,
                details={"required": list(scope)},
            )
            raise Forbidden(f"Requires one of: {', '.join(scope)}")
        emit_auth_event("auth.success", request=request, subject=credentials.subject)
        return AuthState(credentials=credentials, strategy=name, mode=spec.mode)

    if failure is not None:
        event = "auth.token.expired" if failure.detail == "Token expired" else "auth.token.invalid"
        emit_auth_event(event, request=request, details={"error": failure.detail})
        if spec.mode == "try" and not scope:
            return AuthState(mode=spec.mode, error=failure.detail)
        raise failure

    emit_auth_event("auth.token.missing", request=request)
    if spec.mode == "required" or scope:
        first = registry[spec.strategies[0]]
        raise Unauthorized("Missing authentication", scheme=first.scheme)
    return AuthState(mode=spec.mode)


def bind_auth(state: AuthState) -> Any:
    """Set the auth ContextVar; returns the token for ``reset_auth``."""
    return _auth_var.set(state)


def reset_auth(token: Any) -> None:
    _auth_var.reset(token)
