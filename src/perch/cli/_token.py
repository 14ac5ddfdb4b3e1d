"""``perch token``: sign a JWT for local testing of protected routes."""

import argparse
import json
import sys
from typing import Any

from jwt.exceptions import PyJWTError

from perch.auth.tokens import encode_token


def parse_claims(pairs: list[str]) -> dict[str, Any]:
    """Turn ``["id=1", "name=Jen Jones"]`` into a claims dict.

    Values that parse as JSON keep their JSON type; anything else is
    kept as a string.
    """
    claims: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            msg = f"Invalid claim {pair!r}, expected KEY=VALUE"
            raise ValueError(msg)
        try:
            claims[key] = json.loads(raw)
        except json.JSONDecodeError:
            claims[key] = raw
    return claims


def run_token(args: argparse.Namespace) -> None:
    try:
        claims = parse_claims(args.claim)
        token = encode_token(
            claims,
            args.secret,
            algorithm=args.algorithm,
            expires_in=args.expires,
        )
    except (ValueError, PyJWTError, NotImplementedError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    print(token)
