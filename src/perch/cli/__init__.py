"""Perch CLI: serve, inspect, deploy, and issue dev tokens.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch: a small ASGI web framework: routes, plugins, and JWT auth.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- perch run --------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start the server")
    run_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--log-level",
        default=None,
        choices=("critical", "error", "warning", "info", "debug"),
        help="Logging level (defaults to the app's config)",
    )

    # -- perch routes -----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    # -- perch plugins ----------------------------------------------------
    plugins_parser = subparsers.add_parser("plugins", help="List registered plugins")
    plugins_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    # -- perch deploy -----------------------------------------------------
    deploy_parser = subparsers.add_parser("deploy", help="Serverless deployment descriptor")
    deploy_sub = deploy_parser.add_subparsers(dest="deploy_command")

    init_parser = deploy_sub.add_parser("init", help="Write a deployment descriptor")
    init_parser.add_argument("entry", help="Source file that defines the ASGI app (e.g. app.py)")
    init_parser.add_argument("--output", "-o", default=None, help="Descriptor path (default: vercel.json)")
    init_parser.add_argument("--use", default=None, help="Builder package (default: @vercel/python)")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing descriptor")

    check_parser = deploy_sub.add_parser("check", help="Validate a deployment descriptor")
    check_parser.add_argument("file", nargs="?", default=None, help="Descriptor path (default: vercel.json)")

    # -- perch token ------------------------------------------------------
    token_parser = subparsers.add_parser("token", help="Print a signed JWT for local testing")
    token_parser.add_argument("--secret", required=True, help="HMAC signing key")
    token_parser.add_argument(
        "--claim",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Claim to include (repeatable); VALUE is parsed as JSON when possible",
    )
    token_parser.add_argument("--expires", type=float, default=None, help="Lifetime in seconds")
    token_parser.add_argument("--algorithm", default="HS256", help="Signing algorithm")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from perch.cli._run import run_server

        run_server(args)
    elif args.command == "routes":
        from perch.cli._routes import run_routes

        run_routes(args)
    elif args.command == "plugins":
        from perch.cli._routes import run_plugins

        run_plugins(args)
    elif args.command == "deploy":
        if args.deploy_command is None:
            deploy_parser.print_help()
            sys.exit(0)
        from perch.cli._deploy import run_deploy

        run_deploy(args)
    elif args.command == "token":
        from perch.cli._token import run_token

        run_token(args)
