"""Deployment: the serverless platform's JSON descriptor."""

from perch.deploy.descriptor import (
    CATCH_ALL,
    DEFAULT_BUILDER,
    DEFAULT_FILENAME,
    Build,
    DeploymentDescriptor,
    DescriptorError,
    RouteMapping,
    dump,
    dumps,
    load,
    loads,
)

__all__ = [
    "CATCH_ALL",
    "DEFAULT_BUILDER",
    "DEFAULT_FILENAME",
    "Build",
    "DeploymentDescriptor",
    "DescriptorError",
    "RouteMapping",
    "dump",
    "dumps",
    "load",
    "loads",
]
