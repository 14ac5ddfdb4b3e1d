"""Test utilities for perch applications.

Provides an in-process ASGI test client and auth assertion helpers::

    from perch.testing import TestClient, bearer
"""

from perch.testing.assertions import assert_challenge, assert_forbidden, bearer
from perch.testing.client import TestClient

__all__ = [
    "TestClient",
    "assert_challenge",
    "assert_forbidden",
    "bearer",
]
