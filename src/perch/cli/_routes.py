"""``perch routes`` and ``perch plugins``: introspection tables."""

import argparse
import sys

from perch.cli._resolve import resolve_or_exit
from perch.errors import ConfigurationError


def _print_table(headers: tuple[str, ...], rows: list[tuple[str, ...]]) -> None:
    widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(headers)]
    fmt = "  ".join(f"{{:<{w}}}" for w in widths[:-1]) + "  {}"
    print(fmt.format(*headers))
    print("-" * min(sum(widths) + 2 * (len(widths) - 1), 80))
    for row in rows:
        print(fmt.format(*row))


def run_routes(args: argparse.Namespace) -> None:
    """Print METHOD, PATH, AUTH, and HANDLER for every route."""
    app = resolve_or_exit(args)
    try:
        routes = app.routes
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not routes:
        print("No routes registered.")
        return

    rows: list[tuple[str, ...]] = []
    for route in routes:
        methods = ", ".join(sorted(route.methods))
        auth = "-"
        if route.auth is not None:
            auth = "|".join(route.auth.strategies)
            if route.auth.mode != "required":
                auth = f"{auth} ({route.auth.mode})"
        handler = getattr(route.handler, "__name__", str(route.handler))
        if route.plugin:
            handler = f"{handler} [{route.plugin}]"
        rows.append((methods, route.path, auth, handler))

    _print_table(("METHOD", "PATH", "AUTH", "HANDLER"), rows)


def run_plugins(args: argparse.Namespace) -> None:
    """Print NAME, VERSION, and PREFIX for every registered plugin."""
    app = resolve_or_exit(args)
    records = list(app.plugins)
    if not records:
        print("No plugins registered.")
        return
    rows = [(r.name, r.version, r.prefix or "/") for r in records]
    _print_table(("NAME", "VERSION", "PREFIX"), rows)
