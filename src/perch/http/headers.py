"""Request headers, plus the ``Authorization`` parser auth strategies share."""

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Header names are matched without regard to case.

    Built from the ASGI scope's byte pairs. Indexing returns the first
    value a client sent; ``get_list`` returns every one, in order.
    Iteration yields lower-cased names.
    """

    __slots__ = ("_index", "_raw")

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        self._raw = raw
        index: dict[str, list[str]] = {}
        for name, value in raw:
            index.setdefault(name.decode("latin-1").lower(), []).append(value.decode("latin-1"))
        self._index = index

    @classmethod
    def from_dict(cls, headers: Mapping[str, str]) -> Headers:
        return cls(
            tuple((k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers.items())
        )

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        return self._raw

    def __getitem__(self, key: str) -> str:
        return self._index[key.lower()][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get_list(self, key: str) -> list[str]:
        return list(self._index.get(key.lower(), ()))


def parse_authorization(value: str | None) -> tuple[str, str] | None:
    """Split an ``Authorization`` header into ``(scheme, credentials)``.

    The scheme is returned as sent; compare it case-insensitively.
    Returns ``None`` for a missing header or one without credentials::

        parse_authorization("Bearer abc.def.ghi")  # ("Bearer", "abc.def.ghi")
        parse_authorization("Bearer ")             # None
    """
    if not value:
        return None
    scheme, _, credentials = value.strip().partition(" ")
    credentials = credentials.strip()
    if not scheme or not credentials:
        return None
    return scheme, credentials
