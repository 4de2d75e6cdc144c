__all__ = ["DataModel", "FrozenDataModel"]

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class DataModel(BaseModel):
    """Base of every request, result, message and config model.

    Unknown fields are ignored so that cached and queued payloads
    written by an older version still load.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(indent=indent)

    def copy(
        self, update: dict[str, Any] | None = None, deep: bool = False
    ) -> Self:
        return self.model_copy(update=update, deep=deep)

    @classmethod
    def from_dict(cls, obj: dict | None) -> Self:
        return cls.model_validate(obj)

    @classmethod
    def from_json(cls, json: str | bytes) -> Self:
        return cls.model_validate_json(json)


class FrozenDataModel(DataModel):
    """Immutable value type.

    Instances are hashable, reject attribute assignment and
    unknown fields.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True, extra="forbid", frozen=True
    )
