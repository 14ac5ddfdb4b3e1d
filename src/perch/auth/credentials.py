"""Credentials and per-request authentication state."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Credentials:
    """What an auth strategy learned about the caller.

    ``subject`` is the caller's identity (the JWT ``sub`` or ``id`` claim),
    ``claims`` the full decoded payload, ``scope`` the permissions granted.
    """

    subject: str | None
    claims: Mapping[str, Any] = field(default_factory=dict)
    scope: frozenset[str] = frozenset()
    strategy: str = ""

    def __getitem__(self, key: str) -> Any:
        return self.claims[key]

    def get(self, key: str, default: Any = None) -> Any:
        """Return a claim, or *default* if the token did not carry it."""
        return self.claims.get(key, default)


@dataclass(frozen=True, slots=True)
class AuthState:
    """Authentication outcome attached to ``Request.auth``.

    Unauthenticated requests carry ``ANONYMOUS`` (or a copy with ``error``
    set when a ``try`` mode route saw a bad token).
    """

    credentials: Credentials | None = None
    strategy: str | None = None
    mode: str | None = None
    error: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.credentials is not None


ANONYMOUS = AuthState()
