from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter, ValidationError

from semindex.core.exceptions import BadRequestError

from ._descriptions import Description


class DescriptionParser:
    """Parse stored descriptions.

    Stored queries (for example the body of a concept) are kept
    as the JSON dump of a description tree.
    """

    _adapter: TypeAdapter = TypeAdapter(Description)

    @staticmethod
    def parse(value: str | dict[str, Any]) -> Description:
        try:
            if isinstance(value, str):
                return DescriptionParser._adapter.validate_json(value)
            return DescriptionParser._adapter.validate_python(value)
        except ValidationError as e:
            raise BadRequestError(f"Invalid description: {e}") from e

    @staticmethod
    def dumps(description: Description) -> str:
        return description.to_json()
