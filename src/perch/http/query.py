"""Query string access for handlers and auth strategies.

The ``jwt`` strategy reads its ``url_key`` fallback token from here, so
a value must survive exactly as sent (``+`` and ``%xx`` decoded, blank
values kept).
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl

TRUTHY: frozenset[str] = frozenset({"true", "1", "yes", "on"})


class QueryParams(Mapping[str, str]):
    """Read-only view of a query string.

    Lookups return the first value sent for a name; ``get_list`` returns
    all of them in order. Typed getters fall back to *default* instead of
    raising, since a bad query value is the caller's problem to report.
    """

    __slots__ = ("_pairs", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        self._raw = query_string
        self._pairs: tuple[tuple[str, str], ...] = tuple(
            parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
        )

    @property
    def raw(self) -> bytes:
        """The query string as received."""
        return self._raw

    def __getitem__(self, key: str) -> str:
        for name, value in self._pairs:
            if name == key:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._pairs))

    def __len__(self) -> int:
        return len({name for name, _ in self._pairs})

    def __repr__(self) -> str:
        return f"QueryParams({self._raw.decode('latin-1')!r})"

    def get_list(self, key: str) -> list[str]:
        return [value for name, value in self._pairs if name == key]

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """The first value as ``int``; *default* if missing or not an integer."""
        try:
            return int(self[key])
        except (KeyError, ValueError):
            return default

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        """The first value as ``bool``; ``true``, ``1``, ``yes`` and ``on`` are true."""
        value = self.get(key)
        if value is None:
            return default
        return value.lower() in TRUTHY
