"""Base Pydantic models for mcp-milvus.

This module provides the base model class that value types in the package
inherit from. It establishes consistent configuration across all models:

- Strict field validation (no extra fields allowed)
- Immutable instances for thread safety

Example:
    >>> from mcp_milvus.models import FrozenModel
    >>>
    >>> class MyModel(FrozenModel):
    ...     name: str
    ...     count: int = 0
    >>>
    >>> MyModel(name="test").model_dump()
    {'name': 'test', 'count': 0}
"""

from pydantic import BaseModel, ConfigDict


class FrozenModel(BaseModel):
    """Base model for immutable value types.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable so they can be shared across threads

    State transitions produce new instances via ``model_copy(update=...)``
    instead of mutating in place.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)
