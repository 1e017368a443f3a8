"""Case- and format-insensitive resolution of Milvus type names.

``"FloatVector"``, ``"float_vector"`` and ``"FLOAT_VECTOR"`` all resolve to
``DataType.FLOAT_VECTOR``. Lookup tables are built once at import time from
the pymilvus enums. Unknown names resolve to the ``NONE`` / ``UNKNOWN``
sentinels, which callers must reject.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from pymilvus import DataType, FunctionType

E = TypeVar("E", bound=Enum)


def _camel_case(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


def _variants(name: str) -> set[str]:
    """Spellings of an enum member name that should resolve to it."""
    snake = name.lower()
    camel = _camel_case(name)
    return {
        name,
        name.upper(),
        snake,
        snake.replace("_", ""),
        camel,
        camel.lower(),
    }


def _normalise(name: str) -> str:
    return name.strip().lower()


def build_lookup(enum_cls: type[E], *, exclude: tuple[E, ...] = ()) -> dict[str, E]:
    """Map every lower-cased spelling variant of each member to the member."""
    table: dict[str, E] = {}
    for member in enum_cls:
        if member in exclude:
            continue
        for variant in _variants(member.name):
            table[_normalise(variant)] = member
    return table


_DATA_TYPES = build_lookup(DataType, exclude=(DataType.NONE, DataType.UNKNOWN))
_FUNCTION_TYPES = build_lookup(FunctionType, exclude=(FunctionType.UNKNOWN,))


def _resolve(table: dict[str, E], name: str, sentinel: E) -> E:
    if not isinstance(name, str) or not name.strip():
        return sentinel
    key = _normalise(name)
    if key in table:
        return table[key]
    return table.get(key.replace("_", "").replace("-", ""), sentinel)


def resolve_data_type(name: str) -> DataType:
    """Return the ``DataType`` for ``name``, or ``DataType.NONE`` if unknown."""
    return _resolve(_DATA_TYPES, name, DataType.NONE)


def resolve_function_type(name: str) -> FunctionType:
    """Return the ``FunctionType`` for ``name``, or ``FunctionType.UNKNOWN`` if unknown."""
    return _resolve(_FUNCTION_TYPES, name, FunctionType.UNKNOWN)


__all__ = [
    "DataType",
    "FunctionType",
    "build_lookup",
    "resolve_data_type",
    "resolve_function_type",
]
