from __future__ import annotations

import hashlib
from typing import Annotated, ClassVar, Literal, Union

from pydantic import Field

from semindex.core.data_model import FrozenDataModel

from ._data_items import (
    Comparator,
    DataItem,
    EntityRef,
    Namespace,
    ValueType,
)


class Property(FrozenDataModel):
    """Property reference.

    The numeric id is resolved per compile by the id resolver,
    the key is the stable name.
    """

    key: str
    """Property key, special properties start with an underscore."""

    value_type: ValueType = ValueType.PAGE
    """Declared value type."""

    inverse: bool = False
    """Whether the property is traversed from object to subject."""

    INSTANCE_OF: ClassVar[str] = "_INST"
    CONCEPT: ClassVar[str] = "_CONC"

    @staticmethod
    def instance_of() -> Property:
        return Property(key=Property.INSTANCE_OF)

    def as_direct(self) -> Property:
        return self.model_copy(update={"inverse": False})

    def is_page(self) -> bool:
        return self.value_type == ValueType.PAGE

    def __str__(self) -> str:
        label = self.key.replace("_", " ").strip()
        return f"-{label}" if self.inverse else label


class BaseDescription(FrozenDataModel):
    """Base of all description nodes."""

    @property
    def fingerprint(self) -> str:
        """Stable content hash of the node."""
        return hashlib.md5(self.to_json().encode("utf-8")).hexdigest()

    @property
    def query_string(self) -> str:
        return self.get_query_string()

    def get_query_string(self, as_value: bool = False) -> str:
        raise NotImplementedError

    def get_size(self) -> int:
        return 1

    def get_depth(self) -> int:
        return 0

    def __str__(self) -> str:
        return self.get_query_string()


class Conjunction(BaseDescription):
    type: Literal["conjunction"] = "conjunction"
    descriptions: tuple[Description, ...] = ()

    def get_query_string(self, as_value: bool = False) -> str:
        parts = [d.get_query_string(as_value) for d in self.descriptions]
        s = " ".join(p for p in parts if p)
        if as_value and len(self.descriptions) > 1:
            return f"<q>{s}</q>"
        return s

    def get_size(self) -> int:
        return sum(d.get_size() for d in self.descriptions)

    def get_depth(self) -> int:
        return max((d.get_depth() for d in self.descriptions), default=0)


class Disjunction(BaseDescription):
    type: Literal["disjunction"] = "disjunction"
    descriptions: tuple[Description, ...] = ()

    def get_query_string(self, as_value: bool = False) -> str:
        if as_value:
            values = [d.get_query_string(True) for d in self.descriptions]
            return "||".join(values)
        parts = [d.get_query_string() for d in self.descriptions]
        return f"<q>{' OR '.join(parts)}</q>"

    def get_size(self) -> int:
        return sum(d.get_size() for d in self.descriptions)

    def get_depth(self) -> int:
        return max((d.get_depth() for d in self.descriptions), default=0)


class ClassDescription(BaseDescription):
    type: Literal["class"] = "class"

    categories: tuple[EntityRef, ...]
    """Category members, at least one."""

    hierarchy_depth: int | None = None
    """Subcategory expansion depth, None for unlimited."""

    negated: bool = False

    def get_query_string(self, as_value: bool = False) -> str:
        negation = "!" if self.negated else ""
        names = "||".join(f"{negation}{c.text}" for c in self.categories)
        return f"[[{Namespace.prefix(Namespace.CATEGORY)}{names}]]"


class ConceptDescription(BaseDescription):
    type: Literal["concept"] = "concept"
    concept: EntityRef

    def get_query_string(self, as_value: bool = False) -> str:
        prefix = Namespace.prefix(Namespace.CONCEPT)
        return f"[[{prefix}{self.concept.text}]]"


class NamespaceDescription(BaseDescription):
    type: Literal["namespace"] = "namespace"
    namespace: int

    def get_query_string(self, as_value: bool = False) -> str:
        return f"[[{Namespace.prefix(self.namespace)}+]]"


class SomeProperty(BaseDescription):
    type: Literal["some_property"] = "some_property"

    property: Property
    description: Description

    hierarchy_depth: int | None = None
    """Subproperty expansion depth, None for unlimited."""

    def get_query_string(self, as_value: bool = False) -> str:
        chain = str(self.property)
        inner = self.description
        while isinstance(inner, SomeProperty):
            chain = f"{chain}.{inner.property}"
            inner = inner.description
        value = inner.get_query_string(True) or "+"
        return f"[[{chain}::{value}]]"

    def get_size(self) -> int:
        return 1 + self.description.get_size()

    def get_depth(self) -> int:
        return 1 + self.description.get_depth()


class ValueDescription(BaseDescription):
    type: Literal["value"] = "value"

    data_item: DataItem
    comparator: Comparator = Comparator.EQ

    property: Property | None = None
    """Property the value belongs to, if any."""

    def get_query_string(self, as_value: bool = False) -> str:
        value = f"{self.comparator.prefix}{self.data_item}"
        return value if as_value else f"[[{value}]]"


class ThingDescription(BaseDescription):
    """Wildcard, matches any value (or no value when negated)."""

    type: Literal["thing"] = "thing"
    negated: bool = False

    def get_query_string(self, as_value: bool = False) -> str:
        if as_value:
            return "!+" if self.negated else "+"
        return ""


Description = Annotated[
    Union[
        Conjunction,
        Disjunction,
        ClassDescription,
        ConceptDescription,
        NamespaceDescription,
        SomeProperty,
        ValueDescription,
        ThingDescription,
    ],
    Field(discriminator="type"),
]

Conjunction.model_rebuild()
Disjunction.model_rebuild()
SomeProperty.model_rebuild()
