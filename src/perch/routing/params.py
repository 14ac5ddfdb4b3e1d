"""Converters for typed path segments.

``{id:int}`` captures digits and hands the handler an ``int``; ``{x}``
is ``{x:str}``; ``{rest*}`` is ``{rest:path}`` and spans slashes.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Converter:
    """How one converter matches a segment and turns it into a value.

    ``rank`` orders competing parameter edges at one trie level, lowest
    first; ``None`` marks the catch-all, which is never a plain edge.
    """

    pattern: str
    convert: Callable[[str], Any]
    rank: int | None


CONVERTERS: dict[str, Converter] = {
    "int": Converter(r"\d+", int, 0),
    "float": Converter(r"\d+(?:\.\d+)?", float, 1),
    "str": Converter(r"[^/]+", str, 2),
    "path": Converter(r".+", str, None),
}

SPECIFICITY: dict[str, int] = {
    name: c.rank for name, c in CONVERTERS.items() if c.rank is not None
}


def convert_param(value: str, param_type: str) -> Any:
    """Apply converter *param_type* to a captured segment.

    ``KeyError`` for an unknown converter, ``ValueError`` from the
    conversion itself.
    """
    return CONVERTERS[param_type].convert(value)
