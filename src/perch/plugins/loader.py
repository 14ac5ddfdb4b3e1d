"""Plugin loading from import strings and modules.

``App.register`` accepts a ``Plugin``, any object with a ``plugin``
attribute (typically a module), or a ``"package.module:attr"`` string.
"""

import importlib
from types import ModuleType
from typing import Any

from perch.plugins.plugin import Plugin


def load_plugin(import_string: str) -> Plugin:
    """Resolve an import string to a ``Plugin``.

    Accepts ``"module:attribute"``. When the attribute is omitted it
    defaults to ``"plugin"``.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a ``Plugin``.
    """
    module_path, _, attr_name = import_string.partition(":")
    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name or "plugin")
    if not isinstance(obj, Plugin):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a perch Plugin"
        raise TypeError(msg)
    return obj


def coerce_plugin(obj: Plugin | ModuleType | str | Any) -> Plugin:
    """Turn anything ``App.register`` accepts into a ``Plugin``."""
    if isinstance(obj, Plugin):
        return obj
    if isinstance(obj, str):
        return load_plugin(obj)
    candidate = getattr(obj, "plugin", None)
    if isinstance(candidate, Plugin):
        return candidate
    msg = f"Cannot register {obj!r}: expected a Plugin, an import string, or an object with a 'plugin' attribute"
    raise TypeError(msg)
