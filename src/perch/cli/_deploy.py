"""``perch deploy``: write and check the serverless deployment descriptor."""

import argparse
import sys
from pathlib import Path

from perch.deploy import (
    DEFAULT_BUILDER,
    DEFAULT_FILENAME,
    DeploymentDescriptor,
    DescriptorError,
    dump,
    load,
)


def run_deploy(args: argparse.Namespace) -> None:
    if args.deploy_command == "init":
        _init(args)
    elif args.deploy_command == "check":
        _check(args)


def _init(args: argparse.Namespace) -> None:
    target = Path(args.output or DEFAULT_FILENAME)
    if target.exists() and not args.force:
        print(f"Error: {target} already exists (use --force to overwrite)", file=sys.stderr)
        raise SystemExit(1)

    descriptor = DeploymentDescriptor.for_entrypoint(args.entry, use=args.use or DEFAULT_BUILDER)
    dump(descriptor, target)
    print(f"Wrote {target}: every path is served by {args.entry}")


def _check(args: argparse.Namespace) -> None:
    target = Path(args.file or DEFAULT_FILENAME)
    try:
        descriptor = load(target)
    except DescriptorError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    problems = descriptor.validate()
    if problems:
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        raise SystemExit(1)
    print(f"{target} OK ({len(descriptor.builds)} build(s), {len(descriptor.routes)} route(s))")
