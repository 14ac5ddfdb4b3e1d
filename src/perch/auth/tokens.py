"""JWT bearer authentication, built on PyJWT.

Usage::

    from perch.auth import JWTConfig, JWTStrategy

    async def validate(payload, request):
        return payload.get("id") in USERS

    app.auth_strategy("jwt", JWTStrategy(JWTConfig(key=SECRET, validate=validate)))

    @app.route("/restricted", auth="jwt")
    def restricted(credentials):
        return f"Hello, {credentials['name']}"

The token is read from ``Authorization: Bearer <token>``. When
``url_key`` is set, a query parameter of that name is accepted too.
"""

import datetime as dt
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import jwt

from perch._internal.invoke import invoke
from perch.auth.credentials import Credentials
from perch.errors import ConfigurationError, Unauthorized
from perch.http.headers import parse_authorization

if TYPE_CHECKING:
    from perch.http.request import Request

TOKEN_EXPIRED = "Token expired"
INVALID_TOKEN = "Invalid token"
INVALID_CREDENTIALS = "Invalid credentials"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Returned by a ``validate`` callback that wants more than yes/no.

    ``credentials`` replaces the claims-derived credentials when given;
    ``scope`` replaces the granted scope.
    """

    is_valid: bool
    credentials: Credentials | None = None
    scope: frozenset[str] | None = None


type Validate = Callable[[Mapping[str, Any], Request], ValidationResult | bool | Awaitable[ValidationResult | bool]]


@dataclass(frozen=True, slots=True)
class JWTConfig:
    """JWT strategy configuration.

    Attributes:
        key: Secret (HMAC) or public key (RSA/EC) used to verify signatures.
        algorithms: Accepted signing algorithms. Never includes ``none``.
        header: Request header carrying the token.
        scheme: Expected scheme prefix, compared case-insensitively.
        url_key: Query parameter accepted as a fallback token source.
        audience: Required ``aud`` claim, if any.
        issuer: Required ``iss`` claim, if any.
        leeway: Clock skew tolerance in seconds for ``exp``/``nbf``/``iat``.
        require: Claims that must be present.
        validate: Optional sync or async ``(payload, request)`` callback.
    """

    key: str | bytes
    algorithms: tuple[str, ...] = ("HS256",)
    header: str = "Authorization"
    scheme: str = "Bearer"
    url_key: str | None = None
    audience: str | Iterable[str] | None = None
    issuer: str | None = None
    leeway: float = 0.0
    require: tuple[str, ...] = ()
    validate: Validate | None = None


def _subject(payload: Mapping[str, Any]) -> str | None:
    for claim in ("sub", "id"):
        value = payload.get(claim)
        if value is not None:
            return str(value)
    return None


def _scope(payload: Mapping[str, Any]) -> frozenset[str]:
    raw = payload.get("scope", payload.get("scp"))
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        return frozenset(raw.split())
    return frozenset(str(s) for s in raw)


class JWTStrategy:
    """Verify bearer JWTs and turn their claims into ``Credentials``."""

    __slots__ = ("_config", "scheme")

    def __init__(self, config: JWTConfig) -> None:
        if not config.key:
            msg = "JWTConfig.key must be set."
            raise ConfigurationError(msg)
        if not config.algorithms or any(a.lower() == "none" for a in config.algorithms):
            msg = "JWTConfig.algorithms must list at least one signing algorithm (not 'none')."
            raise ConfigurationError(msg)
        self._config = config
        self.scheme = config.scheme

    @property
    def config(self) -> JWTConfig:
        return self._config

    def extract_token(self, request: Request) -> str | None:
        """Return the raw token from the header (or query fallback)."""
        cfg = self._config
        parsed = parse_authorization(request.headers.get(cfg.header))
        if parsed is not None:
            scheme, token = parsed
            if scheme.lower() == cfg.scheme.lower():
                return token
        if cfg.url_key is not None:
            return request.query.get(cfg.url_key) or None
        return None

    def decode(self, token: str) -> dict[str, Any]:
        """Verify *token* and return its payload.

        Raises ``Unauthorized`` with error ``Token expired`` or
        ``Invalid token``.
        """
        cfg = self._config
        try:
            return jwt.decode(
                token,
                cfg.key,
                algorithms=list(cfg.algorithms),
                audience=cfg.audience,
                issuer=cfg.issuer,
                leeway=cfg.leeway,
                options={"require": list(cfg.require)},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthorized(TOKEN_EXPIRED, scheme=cfg.scheme, error=TOKEN_EXPIRED) from None
        except jwt.InvalidTokenError:
            raise Unauthorized(INVALID_TOKEN, scheme=cfg.scheme, error=INVALID_TOKEN) from None

    async def authenticate(self, request: Request) -> Credentials | None:
        token = self.extract_token(request)
        if token is None:
            return None

        payload = self.decode(token)
        credentials = Credentials(subject=_subject(payload), claims=payload, scope=_scope(payload))

        if self._config.validate is None:
            return credentials

        result = await invoke(self._config.validate, payload, request)
        if isinstance(result, ValidationResult):
            if not result.is_valid:
                self._reject()
            if result.credentials is not None:
                credentials = result.credentials
            if result.scope is not None:
                credentials = Credentials(
                    subject=credentials.subject,
                    claims=credentials.claims,
                    scope=result.scope,
                )
            return credentials

        if not result:
            self._reject()
        return credentials

    def _reject(self) -> None:
        scheme = self._config.scheme
        raise Unauthorized(INVALID_CREDENTIALS, scheme=scheme, error=INVALID_CREDENTIALS)


def encode_token(
    payload: Mapping[str, Any],
    key: str | bytes,
    *,
    algorithm: str = "HS256",
    expires_in: float | dt.timedelta | None = None,
) -> str:
    """Sign *payload* into a compact JWT.

    Adds ``iat`` and, when *expires_in* is given, ``exp``::

        token = encode_token({"id": 1, "name": "Jen Jones"}, SECRET, expires_in=3600)
    """
    now = dt.datetime.now(dt.UTC)
    claims: dict[str, Any] = {"iat": now, **payload}
    if expires_in is not None:
        delta = expires_in if isinstance(expires_in, dt.timedelta) else dt.timedelta(seconds=expires_in)
        claims["exp"] = now + delta
    return jwt.encode(claims, key, algorithm=algorithm)
