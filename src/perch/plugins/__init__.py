"""Plugins: named bundles of routes and behavior.

    Plugin          -- Name, version, dependencies, and a register function
    PluginScope     -- The ``server`` a plugin's register function receives
    PluginRegistry  -- What has been registered (``app.plugins``)
    load_plugin     -- Resolve ``"package.module:attr"`` to a Plugin
"""

from perch.plugins.loader import load_plugin
from perch.plugins.plugin import Plugin, PluginRecord
from perch.plugins.registry import PluginRegistry
from perch.plugins.scope import PluginScope

__all__ = ["Plugin", "PluginRecord", "PluginRegistry", "PluginScope", "load_plugin"]
