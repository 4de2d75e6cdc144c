from __future__ import annotations

from typing import Any, Generic, TypeVar

from .data_model import DataModel

T = TypeVar("T")


class Context(DataModel):
    """Per call context handed from the component to the provider.

    Attributes:
        id: Call id, generated when the caller passes none.
        data: Caller supplied values, for example a request origin.
    """

    id: str | None = None
    data: dict[str, Any] | None = None

    def get(self, key: str, default: Any = None) -> Any:
        if not self.data:
            return default
        return self.data.get(key, default)


class Response(DataModel, Generic[T]):
    """Result envelope of every operation."""

    result: T

    context: Context | None = None
