"""Routing: route table and most-specific-match resolution.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.
"""

from perch.routing.route import Route, RouteMatch
from perch.routing.router import Router, parse_path

__all__ = ["Route", "RouteMatch", "Router", "parse_path"]
