"""Uniform calling of user callbacks that may be ``def`` or ``async def``.

Route handlers, error handlers, lifecycle hooks, and JWT ``validate``
callbacks all go through ``invoke``.
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func*; await what it returns when that is awaitable."""
    outcome = func(*args, **kwargs)
    return await outcome if inspect.isawaitable(outcome) else outcome
