"""``perch run``: start the server for an app import string."""

import argparse
import logging

from perch.cli._resolve import resolve_or_exit
from perch.errors import ConfigurationError

logger = logging.getLogger("perch.cli")


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it until interrupted.

    CLI flags override the app's config. Exits 1 on setup errors and
    on unhandled failures while serving.
    """
    app = resolve_or_exit(args)

    log_level = args.log_level or app.config.log_level
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        app.run(host=args.host, port=args.port)
    except ConfigurationError as exc:
        logger.error("Cannot start %s: %s", args.app, exc)
        raise SystemExit(1) from exc
