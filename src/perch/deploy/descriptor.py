"""Serverless deployment descriptor (``vercel.json`` shape).

A small JSON document that tells the hosting platform which source
file to build and how incoming paths map onto it::

    {
      "version": 2,
      "builds": [{"src": "app.py", "use": "@vercel/python"}],
      "routes": [{"src": "/(.*)", "dest": "app.py"}]
    }

The platform serves the module's ASGI ``app`` attribute. Nothing here
talks to the platform; documents are only written and checked locally.
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from perch.errors import PerchError

DEFAULT_BUILDER = "@vercel/python"
DEFAULT_FILENAME = "vercel.json"
CATCH_ALL = "/(.*)"
SUPPORTED_VERSION = 2


class DescriptorError(PerchError):
    """The descriptor could not be read or parsed."""


@dataclass(frozen=True, slots=True)
class Build:
    """One build step: a source file and the builder that packages it."""

    src: str
    use: str = DEFAULT_BUILDER
    config: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"src": self.src, "use": self.use}
        if self.config:
            data["config"] = dict(self.config)
        return data


@dataclass(frozen=True, slots=True)
class RouteMapping:
    """Maps request paths matching ``src`` (a regex) to ``dest``."""

    src: str
    dest: str
    methods: tuple[str, ...] = ()
    headers: Mapping[str, str] = field(default_factory=dict)

    def matches(self, path: str, method: str = "GET") -> bool:
        """True if *path* (anchored) and *method* fall under this mapping."""
        if self.methods and method.upper() not in {m.upper() for m in self.methods}:
            return False
        return re.fullmatch(self.src, path) is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"src": self.src, "dest": self.dest}
        if self.methods:
            data["methods"] = list(self.methods)
        if self.headers:
            data["headers"] = dict(self.headers)
        return data


@dataclass(frozen=True, slots=True)
class DeploymentDescriptor:
    """The whole document."""

    builds: tuple[Build, ...] = ()
    routes: tuple[RouteMapping, ...] = ()
    version: int = SUPPORTED_VERSION

    @classmethod
    def for_entrypoint(cls, src: str, *, use: str = DEFAULT_BUILDER) -> DeploymentDescriptor:
        """One build for *src* and a catch-all route sending every path to it."""
        return cls(
            builds=(Build(src=src, use=use),),
            routes=(RouteMapping(src=CATCH_ALL, dest=src),),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DeploymentDescriptor:
        """Build a descriptor from parsed JSON.

        Raises ``DescriptorError`` for a document of the wrong shape.
        """
        if not isinstance(data, Mapping):
            msg = f"Descriptor must be a JSON object, got {type(data).__name__}."
            raise DescriptorError(msg)
        try:
            builds = tuple(
                Build(src=b["src"], use=b.get("use", DEFAULT_BUILDER), config=b.get("config", {}))
                for b in data.get("builds", ())
            )
            routes = tuple(
                RouteMapping(
                    src=r["src"],
                    dest=r["dest"],
                    methods=tuple(r.get("methods", ())),
                    headers=r.get("headers", {}),
                )
                for r in data.get("routes", ())
            )
        except (KeyError, TypeError, AttributeError) as exc:
            msg = f"Malformed descriptor entry: {exc!r}"
            raise DescriptorError(msg) from exc
        return cls(builds=builds, routes=routes, version=data.get("version", SUPPORTED_VERSION))

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "builds": [b.to_dict() for b in self.builds],
            "routes": [r.to_dict() for r in self.routes],
        }

    def validate(self) -> list[str]:
        """Return a list of problems; empty means the document is usable."""
        problems: list[str] = []
        if self.version != SUPPORTED_VERSION:
            problems.append(f"Unsupported version {self.version!r} (expected {SUPPORTED_VERSION}).")
        if not self.builds:
            problems.append("No builds: name at least one source file to build.")

        sources = [b.src for b in self.builds]
        problems.extend(
            f"Build source {src!r} is listed more than once."
            for src in sorted({s for s in sources if sources.count(s) > 1})
        )

        for index, mapping in enumerate(self.routes):
            try:
                re.compile(mapping.src)
            except re.error as exc:
                problems.append(f"Route {index} has an invalid pattern {mapping.src!r}: {exc}.")
            dest = mapping.dest.split("?", 1)[0].lstrip("/")
            if dest not in {s.lstrip("/") for s in sources}:
                problems.append(f"Route {index} sends to {mapping.dest!r}, which no build produces.")
        return problems

    def resolve(self, path: str, method: str = "GET") -> RouteMapping | None:
        """Return the first mapping that handles *path*, or ``None``."""
        for mapping in self.routes:
            try:
                if mapping.matches(path, method):
                    return mapping
            except re.error:
                continue
        return None


def loads(text: str) -> DeploymentDescriptor:
    """Parse a descriptor from JSON text."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Descriptor is not valid JSON: {exc}"
        raise DescriptorError(msg) from exc
    return DeploymentDescriptor.from_dict(data)


def load(path: str | Path) -> DeploymentDescriptor:
    """Read a descriptor file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read {path}: {exc.strerror or exc}"
        raise DescriptorError(msg) from exc
    return loads(text)


def dumps(descriptor: DeploymentDescriptor) -> str:
    return json.dumps(descriptor.to_dict(), indent=2) + "\n"


def dump(descriptor: DeploymentDescriptor, path: str | Path) -> Path:
    """Write *descriptor* to *path* as pretty-printed JSON."""
    target = Path(path)
    target.write_text(dumps(descriptor), encoding="utf-8")
    return target
