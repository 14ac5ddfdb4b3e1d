"""Value types the router stores and returns."""

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.auth.strategy import AuthSpec


@dataclass(frozen=True, slots=True)
class PathSegment:
    """One ``/``-separated piece of a route pattern.

    ``value`` is the text as written; for ``{id:int}`` the segment also
    carries ``param_name="id"`` and ``param_type="int"``.
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route after auth resolution.

    ``auth`` is ``None`` for public routes. ``plugin`` names the plugin
    whose scope added the route, if any. ``signature`` is the handler's,
    inspected once when the app compiles.
    """

    path: str
    handler: Callable[..., Any]
    methods: frozenset[str]
    name: str | None = None
    auth: AuthSpec | None = None
    scope: tuple[str, ...] = ()
    plugin: str | None = None
    description: str = ""
    signature: inspect.Signature | None = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """The route chosen for a request, with captured segments still as text.

    ``param_types`` maps each captured name to its converter.
    """

    route: Route
    path_params: dict[str, str]
    param_types: dict[str, str] = field(default_factory=dict)
