"""
Fluent construction of collection schemas.

``SchemaBuilder`` assembles fields and functions and validates the result in
``build()``. ``build_schema_from_map`` drives the builder from the loosely typed
JSON object a tool caller sends, reporting the index and property of the first
malformed entry.

Example usage:
    >>> schema = (
    ...     SchemaBuilder()
    ...     .add_field("id", "Primary key", DataType.INT64).with_primary_key().done()
    ...     .add_field("vector", "", DataType.FLOAT_VECTOR).with_dimension(128).done()
    ...     .build()
    ... )
    >>> schema.primary_field_name
    'id'
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pymilvus import DataType, FunctionType

from mcp_milvus.schema.models import (
    DIM_PARAM,
    MAX_LENGTH_PARAM,
    CollectionSchema,
    FieldSchema,
    FunctionSchema,
    SchemaError,
)
from mcp_milvus.schema.types import resolve_data_type, resolve_function_type


class FieldBuilder:
    """Configures one field, then returns to the parent with ``done()``."""

    def __init__(self, parent: SchemaBuilder, name: str, description: str, data_type: DataType):
        self._parent = parent
        self.name = name
        self.description = description
        self.data_type = data_type
        self.is_primary_key = False
        self.auto_id = False
        self.nullable = False
        self.type_params: dict[str, str] = {}

    def with_primary_key(self, is_primary: bool = True) -> FieldBuilder:
        self.is_primary_key = is_primary
        return self

    def with_auto_id(self, auto_id: bool = True) -> FieldBuilder:
        self.auto_id = auto_id
        return self

    def with_nullable(self, nullable: bool = True) -> FieldBuilder:
        self.nullable = nullable
        return self

    def with_dimension(self, dim: int) -> FieldBuilder:
        return self.with_type_param(DIM_PARAM, str(int(dim)))

    def with_max_length(self, max_length: int) -> FieldBuilder:
        return self.with_type_param(MAX_LENGTH_PARAM, str(int(max_length)))

    def with_type_param(self, key: str, value: Any) -> FieldBuilder:
        self.type_params[key] = _stringify(value)
        return self

    def done(self) -> SchemaBuilder:
        return self._parent

    def to_model(self) -> FieldSchema:
        return FieldSchema(
            name=self.name,
            description=self.description,
            data_type=self.data_type,
            is_primary_key=self.is_primary_key,
            auto_id=self.auto_id,
            nullable=self.nullable,
            type_params=dict(self.type_params),
        )


class FunctionBuilder:
    """Configures one function, then returns to the parent with ``done()``."""

    def __init__(
        self, parent: SchemaBuilder, name: str, description: str, function_type: FunctionType
    ):
        self._parent = parent
        self.name = name
        self.description = description
        self.function_type = function_type
        self.input_field_names: list[str] = []
        self.output_field_names: list[str] = []
        self.params: dict[str, str] = {}

    def with_input_fields(self, *field_names: str) -> FunctionBuilder:
        self.input_field_names.extend(field_names)
        return self

    def with_output_fields(self, *field_names: str) -> FunctionBuilder:
        self.output_field_names.extend(field_names)
        return self

    def with_param(self, key: str, value: Any) -> FunctionBuilder:
        self.params[key] = _stringify(value)
        return self

    def done(self) -> SchemaBuilder:
        return self._parent

    def to_model(self) -> FunctionSchema:
        return FunctionSchema(
            name=self.name,
            description=self.description,
            function_type=self.function_type,
            input_field_names=list(self.input_field_names),
            output_field_names=list(self.output_field_names),
            params=dict(self.params),
        )


class SchemaBuilder:
    """Collects fields and functions for a ``CollectionSchema``.

    Validation happens only in ``build()``: the schema needs at least one
    field and at least one primary key field.
    """

    def __init__(self) -> None:
        self.auto_id = False
        self.enable_dynamic_field = False
        self._fields: list[FieldBuilder] = []
        self._functions: list[FunctionBuilder] = []

    def with_auto_id(self, auto_id: bool = True) -> SchemaBuilder:
        self.auto_id = auto_id
        return self

    def with_dynamic_field(self, enable: bool = True) -> SchemaBuilder:
        self.enable_dynamic_field = enable
        return self

    def add_field(self, name: str, description: str, data_type: DataType) -> FieldBuilder:
        field = FieldBuilder(self, name, description, data_type)
        self._fields.append(field)
        return field

    def add_function(
        self, name: str, description: str, function_type: FunctionType
    ) -> FunctionBuilder:
        function = FunctionBuilder(self, name, description, function_type)
        self._functions.append(function)
        return function

    def build(self) -> CollectionSchema:
        if not self._fields:
            raise SchemaError("schema must contain at least one field")
        if not any(field.is_primary_key for field in self._fields):
            raise SchemaError("schema must have a primary key field")

        return CollectionSchema(
            auto_id=self.auto_id,
            enable_dynamic_field=self.enable_dynamic_field,
            fields=[field.to_model() for field in self._fields],
            functions=[function.to_model() for function in self._functions],
        )


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_array(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _first_present(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def _string_list(values: Iterable[Any], function_index: int, kind: str) -> list[str]:
    names = []
    for j, value in enumerate(values):
        if not isinstance(value, str):
            raise SchemaError(f"function {function_index} {kind} field {j} must be a string")
        names.append(value)
    return names


def _add_field_from_map(builder: SchemaBuilder, index: int, field_map: Any) -> None:
    if not isinstance(field_map, Mapping):
        raise SchemaError(f"field {index} must be an object")

    name = field_map.get("name")
    if not isinstance(name, str):
        raise SchemaError(f"field {index} missing required 'name' property")
    type_name = field_map.get("data_type")
    if not isinstance(type_name, str):
        raise SchemaError(f"field {index} missing required 'data_type' property")
    data_type = resolve_data_type(type_name)
    if data_type == DataType.NONE:
        raise SchemaError(f"field {index} has unknown data type '{type_name}'")

    description = field_map.get("description")
    field = builder.add_field(name, description if isinstance(description, str) else "", data_type)

    if _first_present(field_map, "is_primary", "is_primary_key") is True:
        field.with_primary_key(True)
    if isinstance(field_map.get("auto_id"), bool):
        field.with_auto_id(field_map["auto_id"])
    if isinstance(field_map.get("nullable"), bool):
        field.with_nullable(field_map["nullable"])

    dimension = _first_present(field_map, "dimension", "dim")
    if _is_number(dimension):
        field.with_dimension(int(dimension))
    max_length = field_map.get("max_length")
    if _is_number(max_length):
        field.with_max_length(int(max_length))

    type_params = field_map.get("type_params")
    if isinstance(type_params, Mapping):
        for key, value in type_params.items():
            field.with_type_param(str(key), value)


def _add_function_from_map(builder: SchemaBuilder, index: int, function_map: Any) -> None:
    if not isinstance(function_map, Mapping):
        raise SchemaError(f"function {index} must be an object")

    name = function_map.get("name")
    if not isinstance(name, str):
        raise SchemaError(f"function {index} missing required 'name' property")
    type_name = function_map.get("type")
    if not isinstance(type_name, str):
        raise SchemaError(f"function {index} missing required 'type' property")
    function_type = resolve_function_type(type_name)
    if function_type == FunctionType.UNKNOWN:
        raise SchemaError(f"function {index} has unknown type '{type_name}'")

    description = function_map.get("description")
    function = builder.add_function(
        name, description if isinstance(description, str) else "", function_type
    )

    inputs = _first_present(function_map, "input_field_names", "input_fields")
    if _is_array(inputs):
        function.with_input_fields(*_string_list(inputs, index, "input"))
    outputs = _first_present(function_map, "output_field_names", "output_fields")
    if _is_array(outputs):
        function.with_output_fields(*_string_list(outputs, index, "output"))

    params = function_map.get("params")
    if isinstance(params, Mapping):
        for key, value in params.items():
            function.with_param(str(key), value)


def build_schema_from_map(schema_map: Mapping[str, Any]) -> CollectionSchema:
    """Build a schema from a decoded JSON object.

    Args:
        schema_map: ``{"auto_id", "enable_dynamic_field", "fields", "functions"}``

    Raises:
        SchemaError: If any required property is missing or malformed, or a
            type name does not resolve.
    """
    if not isinstance(schema_map, Mapping):
        raise SchemaError("collection schema must be an object")

    builder = SchemaBuilder()
    if isinstance(schema_map.get("auto_id"), bool):
        builder.with_auto_id(schema_map["auto_id"])
    if isinstance(schema_map.get("enable_dynamic_field"), bool):
        builder.with_dynamic_field(schema_map["enable_dynamic_field"])

    if "fields" not in schema_map:
        raise SchemaError("schema must contain a 'fields' array")
    fields = schema_map["fields"]
    if not _is_array(fields):
        raise SchemaError("'fields' must be an array")
    for i, field_map in enumerate(fields):
        _add_field_from_map(builder, i, field_map)

    if "functions" in schema_map:
        functions = schema_map["functions"]
        if not _is_array(functions):
            raise SchemaError("'functions' must be an array")
        for i, function_map in enumerate(functions):
            _add_function_from_map(builder, i, function_map)

    return builder.build()


__all__ = [
    "FieldBuilder",
    "FunctionBuilder",
    "SchemaBuilder",
    "SchemaError",
    "build_schema_from_map",
]
