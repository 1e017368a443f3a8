"""Collection schema construction and type-name resolution."""

from .builder import (
    FieldBuilder,
    FunctionBuilder,
    SchemaBuilder,
    SchemaError,
    build_schema_from_map,
)
from .models import CollectionSchema, FieldSchema, FunctionSchema
from .types import resolve_data_type, resolve_function_type

__all__ = [
    "CollectionSchema",
    "FieldBuilder",
    "FieldSchema",
    "FunctionBuilder",
    "FunctionSchema",
    "SchemaBuilder",
    "SchemaError",
    "build_schema_from_map",
    "resolve_data_type",
    "resolve_function_type",
]
