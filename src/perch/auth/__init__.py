"""Authentication: named strategies gated per route.

    AuthSpec      -- Which strategies a route needs, and in which mode
    JWTStrategy   -- Bearer JWT verification (PyJWT)
    get_credentials / get_auth -- Request-scoped auth outcome
"""

from perch.auth.audit import AuthEvent, emit_auth_event, set_auth_event_sink
from perch.auth.credentials import ANONYMOUS, AuthState, Credentials
from perch.auth.strategy import (
    AuthRegistry,
    AuthSpec,
    AuthStrategy,
    authenticate,
    get_auth,
    get_credentials,
)
from perch.auth.tokens import JWTConfig, JWTStrategy, ValidationResult, encode_token

__all__ = [
    "ANONYMOUS",
    "AuthEvent",
    "AuthRegistry",
    "AuthSpec",
    "AuthState",
    "AuthStrategy",
    "Credentials",
    "JWTConfig",
    "JWTStrategy",
    "ValidationResult",
    "authenticate",
    "emit_auth_event",
    "encode_token",
    "get_auth",
    "get_credentials",
    "set_auth_event_sink",
]
