"""Path matching over a segment trie.

Each trie level tries its edges in this order::

    static segment  >  {x:int}  >  {x:float}  >  {x} / {x:str}  >  {x:path}

If a deeper level fails, or only has routes for other methods, the
matcher backs up and tries the next edge. A request therefore lands on
the most specific route that accepts both its path and its method.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.params import CONVERTERS, SPECIFICITY
from perch.routing.route import PathSegment, Route, RouteMatch

ANY_METHOD = "*"

_PARAM_RE = re.compile(r"^\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<type>\w+)|(?P<star>\*))?\}$")


def parse_path(path: str) -> list[PathSegment]:
    """Split *path* into static and parameter segments::

        "/users"             -> [PathSegment("users")]
        "/users/{id}"        -> [PathSegment("users"), PathSegment("{id}", is_param=True, ...)]
        "/users/{id:int}"    -> [..., PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/{rest*}"     -> [..., PathSegment("{rest*}", is_param=True, param_type="path")]

    ``ConfigurationError`` for ``<param>`` placeholders, malformed or
    unknown converters, repeated names, and a catch-all before the end.
    """
    segments: list[PathSegment] = []
    parts = [p for p in path.strip("/").split("/") if p]
    for index, part in enumerate(parts):
        if part.startswith("<") and part.endswith(">"):
            msg = (
                f"Route {path!r} uses <param> syntax. "
                f"Perch expects {{param}} placeholders, e.g. '/{{{part[1:-1]}}}'."
            )
            raise ConfigurationError(msg)

        if not (part.startswith("{") or part.endswith("}")):
            segments.append(PathSegment(value=part))
            continue

        m = _PARAM_RE.match(part)
        if m is None:
            msg = f"Route {path!r} has a malformed parameter segment {part!r}."
            raise ConfigurationError(msg)

        param_type = "path" if m.group("star") else (m.group("type") or "str")
        if param_type not in CONVERTERS:
            known = ", ".join(sorted(CONVERTERS))
            msg = f"Route {path!r} uses unknown converter {param_type!r} (known: {known})."
            raise ConfigurationError(msg)

        if param_type == "path" and index != len(parts) - 1:
            msg = f"Route {path!r}: catch-all parameter {part!r} must be the last segment."
            raise ConfigurationError(msg)

        segments.append(
            PathSegment(
                value=part,
                is_param=True,
                param_name=m.group("name"),
                param_type=param_type,
            )
        )

    names = [s.param_name for s in segments if s.is_param]
    if len(names) != len(set(names)):
        msg = f"Route {path!r} repeats a parameter name."
        raise ConfigurationError(msg)
    return segments


class _TrieNode:
    """One path depth. Only mutated while routes are being added."""

    __slots__ = ("catch_all", "children", "param_edges", "routes_by_method")

    def __init__(self) -> None:
        self.children: dict[str, _TrieNode] = {}
        # Sorted by converter rank
        self.param_edges: list[_ParamEdge] = []
        self.catch_all: _CatchAllEdge | None = None
        self.routes_by_method: dict[str, Route] = {}


@dataclass(slots=True)
class _ParamEdge:
    param_name: str
    param_type: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """``{rest*}``: the routes that take whatever is left of the path."""

    param_name: str
    routes_by_method: dict[str, Route] = field(default_factory=dict)


def _register(routes_by_method: dict[str, Route], route: Route) -> None:
    for method in route.methods:
        existing = routes_by_method.get(method)
        if existing is not None:
            msg = (
                f"Route conflict: {method} {route.path!r} is already registered "
                f"by {existing.path!r}."
            )
            raise ConfigurationError(msg)
        routes_by_method[method] = route


def _select(routes_by_method: dict[str, Route], method: str) -> Route | None:
    """Pick the route for *method* at a node, honouring HEAD and ``*``."""
    route = routes_by_method.get(method)
    if route is None and method == "HEAD":
        route = routes_by_method.get("GET")
    if route is None:
        route = routes_by_method.get(ANY_METHOD)
    return route


class Router:
    """Route table for one app.

    ::

        router = Router()
        router.add(Route("/users", handler, frozenset({"GET"})))
        router.add(Route("/users/{id:int}", handler, frozenset({"GET"})))
        router.compile()
        match = router.match("GET", "/users/42")
    """

    __slots__ = ("_compiled", "_root", "_routes")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._compiled = False
        self._routes: list[Route] = []

    def add(self, route: Route) -> None:
        """Insert *route*; ``ConfigurationError`` if it clashes with one already added."""
        if self._compiled:
            msg = "Router is compiled; no more routes can be added."
            raise RuntimeError(msg)

        node = self._root
        for seg in parse_path(route.path):
            if seg.param_type == "path" and seg.is_param:
                if node.catch_all is None:
                    node.catch_all = _CatchAllEdge(param_name=seg.param_name or "path")
                elif node.catch_all.param_name != seg.param_name:
                    msg = (
                        f"Route {route.path!r}: catch-all {seg.param_name!r} conflicts "
                        f"with {node.catch_all.param_name!r} at the same position."
                    )
                    raise ConfigurationError(msg)
                _register(node.catch_all.routes_by_method, route)
                self._routes.append(route)
                return

            if seg.is_param:
                node = self._param_node(node, seg, route.path)
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        _register(node.routes_by_method, route)
        self._routes.append(route)

    @staticmethod
    def _param_node(node: _TrieNode, seg: PathSegment, path: str) -> _TrieNode:
        for edge in node.param_edges:
            if edge.param_type == seg.param_type:
                if edge.param_name != seg.param_name:
                    msg = (
                        f"Route {path!r}: parameter {seg.param_name!r} conflicts with "
                        f"{edge.param_name!r} at the same position."
                    )
                    raise ConfigurationError(msg)
                return edge.node

        pattern = CONVERTERS[seg.param_type].pattern
        edge = _ParamEdge(
            param_name=seg.param_name or "",
            param_type=seg.param_type,
            regex=re.compile(f"^{pattern}$"),
            node=_TrieNode(),
        )
        node.param_edges.append(edge)
        node.param_edges.sort(key=lambda e: SPECIFICITY[e.param_type])
        return edge.node

    @property
    def routes(self) -> list[Route]:
        """Registration order."""
        return list(self._routes)

    def compile(self) -> None:
        """Stop accepting routes."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Resolve *method* and *path* to the most specific route.

        ``NotFound`` when no route pattern fits the path;
        ``MethodNotAllowed`` (carrying every method that would have
        worked) when patterns fit but none accepts *method*.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        allowed: set[str] = set()

        for routes_by_method, params, types in self._candidates(self._root, parts, 0, {}, {}):
            route = _select(routes_by_method, method)
            if route is not None:
                return RouteMatch(route=route, path_params=params, param_types=types)
            allowed.update(routes_by_method)

        if allowed:
            if "GET" in allowed:
                allowed.add("HEAD")
            raise MethodNotAllowed(frozenset(allowed))
        raise NotFound(f"No route matches {method} {path!r}")

    def _candidates(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
        types: dict[str, str],
    ) -> Iterator[tuple[dict[str, Route], dict[str, str], dict[str, str]]]:
        """Depth-first walk yielding every terminal that fits *parts*."""
        if index == len(parts):
            if node.routes_by_method:
                yield node.routes_by_method, params, types
            return

        part = parts[index]

        # Literal segment
        child = node.children.get(part)
        if child is not None:
            yield from self._candidates(child, parts, index + 1, params, types)

        for edge in node.param_edges:
            if edge.regex.match(part):
                yield from self._candidates(
                    edge.node,
                    parts,
                    index + 1,
                    {**params, edge.param_name: part},
                    {**types, edge.param_name: edge.param_type},
                )

        # Last resort: swallow the remainder
        if node.catch_all is not None:
            name = node.catch_all.param_name
            yield (
                node.catch_all.routes_by_method,
                {**params, name: "/".join(parts[index:])},
                {**types, name: "path"},
            )
