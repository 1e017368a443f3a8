"""Validated collection schema models and their conversion to pymilvus."""

from __future__ import annotations

import json
from typing import Any

from pydantic import Field
from pymilvus import CollectionSchema as MilvusCollectionSchema
from pymilvus import DataType, FunctionType
from pymilvus import FieldSchema as MilvusFieldSchema
from pymilvus import Function as MilvusFunction

from mcp_milvus.models import FrozenModel
from mcp_milvus.schema.types import resolve_data_type

DIM_PARAM = "dim"
MAX_LENGTH_PARAM = "max_length"


class SchemaError(ValueError):
    """Raised when a collection schema description is invalid."""


# Type params that pymilvus expects as integers.
_INT_PARAMS = frozenset({DIM_PARAM, MAX_LENGTH_PARAM, "max_capacity"})
# Type params that carry nested JSON.
_JSON_PARAMS = frozenset({"analyzer_params"})


def _int_param(params: dict[str, str], key: str) -> int | None:
    value = params.get(key)
    if value is None:
        return None
    try:
        return int(float(value))
    except ValueError:
        return None


def _convert_type_param(key: str, value: str) -> Any:
    if key in _INT_PARAMS:
        try:
            return int(float(value))
        except ValueError:
            raise SchemaError(f"type param '{key}' must be an integer, got '{value}'") from None
    if key == "element_type":
        return resolve_data_type(value)
    if key in _JSON_PARAMS:
        try:
            return json.loads(value)
        except ValueError:
            return value
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


class FieldSchema(FrozenModel):
    """One column of a collection."""

    name: str
    description: str = ""
    data_type: DataType
    is_primary_key: bool = False
    auto_id: bool = False
    nullable: bool = False
    type_params: dict[str, str] = Field(default_factory=dict)

    @property
    def dimension(self) -> int | None:
        return _int_param(self.type_params, DIM_PARAM)

    @property
    def max_length(self) -> int | None:
        return _int_param(self.type_params, MAX_LENGTH_PARAM)

    def to_milvus(self) -> MilvusFieldSchema:
        kwargs: dict[str, Any] = {
            key: _convert_type_param(key, value) for key, value in self.type_params.items()
        }
        if self.is_primary_key:
            kwargs["is_primary"] = True
        if self.auto_id:
            kwargs["auto_id"] = True
        if self.nullable:
            kwargs["nullable"] = True
        return MilvusFieldSchema(self.name, self.data_type, description=self.description, **kwargs)


class FunctionSchema(FrozenModel):
    """A derived-value function (e.g. BM25) attached to a collection."""

    name: str
    description: str = ""
    function_type: FunctionType
    input_field_names: list[str] = Field(default_factory=list)
    output_field_names: list[str] = Field(default_factory=list)
    params: dict[str, str] = Field(default_factory=dict)

    def to_milvus(self) -> MilvusFunction:
        return MilvusFunction(
            name=self.name,
            function_type=self.function_type,
            input_field_names=list(self.input_field_names),
            output_field_names=list(self.output_field_names),
            description=self.description,
            params=dict(self.params) or None,
        )


class CollectionSchema(FrozenModel):
    """A complete, validated collection definition."""

    auto_id: bool = False
    enable_dynamic_field: bool = False
    fields: list[FieldSchema]
    functions: list[FunctionSchema] = Field(default_factory=list)

    @property
    def primary_field(self) -> FieldSchema | None:
        return next((field for field in self.fields if field.is_primary_key), None)

    @property
    def primary_field_name(self) -> str | None:
        field = self.primary_field
        return field.name if field is not None else None

    def field(self, name: str) -> FieldSchema | None:
        return next((field for field in self.fields if field.name == name), None)

    def to_milvus(self) -> MilvusCollectionSchema:
        kwargs: dict[str, Any] = {"enable_dynamic_field": self.enable_dynamic_field}
        if self.auto_id:
            kwargs["auto_id"] = True
        if self.functions:
            kwargs["functions"] = [function.to_milvus() for function in self.functions]
        return MilvusCollectionSchema([field.to_milvus() for field in self.fields], **kwargs)


__all__ = ["CollectionSchema", "FieldSchema", "FunctionSchema", "SchemaError"]
