"""Helpers shared by the tool handlers: argument parsing, backend calls and row coercion."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import Any, TypeVar

from pymilvus import DataType

from mcp_milvus.server._types import ToolRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")

_INTEGER_TYPES = frozenset(
    {DataType.INT8, DataType.INT16, DataType.INT32, DataType.INT64}
)
_FLOAT_TYPES = frozenset({DataType.FLOAT, DataType.DOUBLE})
_STRING_TYPES = frozenset({DataType.VARCHAR, DataType.STRING})
_DENSE_VECTOR_TYPES = frozenset(
    {DataType.FLOAT_VECTOR, DataType.FLOAT16_VECTOR, DataType.BFLOAT16_VECTOR}
)
_PASSTHROUGH_TYPES = frozenset({DataType.JSON, DataType.ARRAY, DataType.SPARSE_FLOAT_VECTOR})


class ToolArgumentError(ValueError):
    """Raised when a tool argument is missing or malformed."""


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def require_str(request: ToolRequest, name: str) -> str:
    value = request.arguments.get(name)
    if value is None or value == "":
        raise ToolArgumentError(f"required argument '{name}' not found")
    if not isinstance(value, str):
        raise ToolArgumentError(f"argument '{name}' is not a string")
    return value


def optional_str(request: ToolRequest, name: str, default: str = "") -> str:
    value = request.arguments.get(name)
    if value is None:
        return default
    return str(value)


def optional_int(request: ToolRequest, name: str, default: int) -> int:
    """Integer argument; unparseable values fall back to ``default``."""
    value = request.arguments.get(name)
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


def _decode(value: Any, name: str) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError as e:
            raise ToolArgumentError(f"Invalid {name} JSON: {e}") from e
    return value


def json_list(request: ToolRequest, name: str, *, required: bool = False) -> list[Any] | None:
    """Array argument given natively or as a JSON string."""
    value = request.arguments.get(name)
    if value is None or value == "":
        if required:
            raise ToolArgumentError(f"required argument '{name}' not found")
        return None
    decoded = _decode(value, name)
    if not isinstance(decoded, list):
        raise ToolArgumentError(f"Invalid {name} JSON: expected an array")
    return decoded


def json_object(
    request: ToolRequest, name: str, *, required: bool = False
) -> dict[str, Any] | None:
    """Object argument given natively or as a JSON string."""
    value = request.arguments.get(name)
    if value is None or value == "":
        if required:
            raise ToolArgumentError(f"required argument '{name}' not found")
        return None
    decoded = _decode(value, name)
    if not isinstance(decoded, dict):
        raise ToolArgumentError(f"Invalid {name} JSON: expected an object")
    return decoded


def string_list(request: ToolRequest, name: str) -> list[str] | None:
    values = json_list(request, name)
    if values is None:
        return None
    if not all(isinstance(v, str) for v in values):
        raise ToolArgumentError(f"Invalid {name} JSON: expected an array of strings")
    return values


# ---------------------------------------------------------------------------
# Backend access
# ---------------------------------------------------------------------------


def get_client(request: ToolRequest) -> Any:
    """Borrow the caller's client for the duration of one tool call."""
    return request.sessions.get(request.session_id)


async def run_blocking(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking client call in a worker thread."""
    return await asyncio.to_thread(fn, *args, **kwargs)


def to_json(value: Any) -> str:
    return json.dumps(_plain(value), indent=2, default=_json_default, ensure_ascii=False)


def _plain(value: Any) -> Any:
    # IntEnums such as DataType are rendered by name, not value.
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.hex()
    if hasattr(value, "tolist"):
        return value.tolist()
    return str(value)


# ---------------------------------------------------------------------------
# Row coercion
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _type_name(value: Any) -> str:
    return type(value).__name__


def field_types(description: Mapping[str, Any]) -> dict[str, tuple[DataType, int]]:
    """Map field name to ``(data type, dimension)`` from ``describe_collection`` output."""
    types: dict[str, tuple[DataType, int]] = {}
    for field in description.get("fields", []):
        raw_type = field.get("type")
        try:
            data_type = raw_type if isinstance(raw_type, DataType) else DataType(raw_type)
        except ValueError:
            continue
        params = field.get("params") or {}
        try:
            dim = int(params.get("dim", 0))
        except (TypeError, ValueError):
            dim = 0
        types[field["name"]] = (data_type, dim)
    return types


def _convert_vector(value: Any, data_type: DataType, dim: int) -> Any:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise ToolArgumentError(f"expected array for {data_type.name}, got {_type_name(value)}")

    if data_type == DataType.BINARY_VECTOR:
        expected = dim // 8
        if dim > 0 and len(value) != expected:
            raise ToolArgumentError(
                f"binary vector dimension mismatch: expected {dim} bits ({expected} bytes), "
                f"got {len(value)} bytes"
            )
    elif dim > 0 and len(value) != dim:
        raise ToolArgumentError(
            f"vector dimension mismatch: expected {dim}, got {len(value)} elements"
        )

    for i, element in enumerate(value):
        if not _is_number(element):
            raise ToolArgumentError(
                f"vector element at index {i}: expected number, got {_type_name(element)}"
            )

    if data_type == DataType.BINARY_VECTOR:
        return bytes(int(element) for element in value)
    return [float(element) for element in value]


def convert_value(value: Any, data_type: DataType, dim: int = 0) -> Any:
    """Coerce one decoded JSON value to what pymilvus expects for ``data_type``."""
    if value is None:
        return None

    if data_type == DataType.BOOL:
        if isinstance(value, bool):
            return value
        raise ToolArgumentError(f"expected bool, got {_type_name(value)}")

    if data_type in _INTEGER_TYPES:
        if _is_number(value) and float(value).is_integer():
            return int(value)
        raise ToolArgumentError(f"expected integer for {data_type.name}, got {value!r}")

    if data_type in _FLOAT_TYPES:
        if _is_number(value):
            return float(value)
        raise ToolArgumentError(f"expected number for {data_type.name}, got {_type_name(value)}")

    if data_type in _STRING_TYPES:
        if isinstance(value, str):
            return value
        raise ToolArgumentError(f"expected string, got {_type_name(value)}")

    if data_type in _DENSE_VECTOR_TYPES or data_type == DataType.BINARY_VECTOR:
        return _convert_vector(value, data_type, dim)

    if data_type in _PASSTHROUGH_TYPES:
        return value

    raise ToolArgumentError(f"unsupported field type: {data_type.name}")


def coerce_rows(
    rows: Sequence[Any], types: Mapping[str, tuple[DataType, int]]
) -> list[dict[str, Any]]:
    """Coerce every row against the collection's field types.

    Fields the schema does not know (dynamic fields) are kept as given.
    """
    coerced: list[dict[str, Any]] = []
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise ToolArgumentError(f"data item at index {i} is not an object")
        item: dict[str, Any] = {}
        for name, value in row.items():
            if name not in types:
                item[name] = value
                continue
            data_type, dim = types[name]
            try:
                item[name] = convert_value(value, data_type, dim)
            except ToolArgumentError as e:
                raise ToolArgumentError(
                    f"failed to convert field '{name}' at row {i}: {e}"
                ) from None
        coerced.append(item)
    return coerced


__all__ = [
    "ToolArgumentError",
    "coerce_rows",
    "convert_value",
    "field_types",
    "get_client",
    "json_list",
    "json_object",
    "optional_int",
    "optional_str",
    "require_str",
    "run_blocking",
    "string_list",
    "to_json",
]
