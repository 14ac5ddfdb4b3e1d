"""Ordered registry of plugin registrations.

Dependencies are checked once, at freeze time, so plugins can be
registered in any order.
"""

import logging
from collections.abc import Iterator

from perch.errors import ConfigurationError
from perch.plugins.plugin import Plugin, PluginRecord

logger = logging.getLogger("perch.plugins")


class PluginRegistry:
    """Registered plugins, in registration order, keyed by name."""

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: dict[str, list[PluginRecord]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __getitem__(self, name: str) -> PluginRecord:
        """Return the first registration of *name*."""
        return self._records[name][0]

    def __iter__(self) -> Iterator[PluginRecord]:
        for records in self._records.values():
            yield from records

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())

    def admit(self, plugin: Plugin) -> bool:
        """Decide whether *plugin* may register now.

        Returns ``False`` for a repeat of a ``once`` plugin, raises
        ``ConfigurationError`` for a repeat of a plain plugin.
        """
        if plugin.name not in self._records or plugin.multiple:
            return True
        if plugin.once:
            logger.debug("Plugin %r already registered; skipping", plugin.name)
            return False
        msg = (
            f"Plugin {plugin.name!r} is already registered. "
            "Set multiple=True to allow repeat registrations."
        )
        raise ConfigurationError(msg)

    def add(self, record: PluginRecord) -> None:
        self._records.setdefault(record.name, []).append(record)
        logger.debug(
            "Registered plugin %s@%s at prefix %r", record.name, record.version, record.prefix or "/"
        )

    def snapshot(self) -> dict[str, list[PluginRecord]]:
        return {name: list(records) for name, records in self._records.items()}

    def restore(self, snapshot: dict[str, list[PluginRecord]]) -> None:
        """Return to a state captured by ``snapshot``."""
        self._records = {name: list(records) for name, records in snapshot.items()}

    def check_dependencies(self) -> None:
        """Raise ``ConfigurationError`` naming every missing dependency."""
        missing: list[str] = []
        for record in self:
            missing.extend(
                f"{record.name} requires {dep}"
                for dep in record.dependencies
                if dep not in self._records
            )
        if missing:
            msg = "Missing plugin dependencies: " + "; ".join(missing)
            raise ConfigurationError(msg)
