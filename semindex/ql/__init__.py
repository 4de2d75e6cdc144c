from ._data_items import (
    Boolean,
    Comparator,
    DataItem,
    EntityRef,
    GeoArea,
    GeoCoord,
    Namespace,
    Number,
    Text,
    Time,
    Uri,
    ValueType,
)
from ._descriptions import (
    BaseDescription,
    ClassDescription,
    ConceptDescription,
    Conjunction,
    Description,
    Disjunction,
    NamespaceDescription,
    Property,
    SomeProperty,
    ThingDescription,
    ValueDescription,
)
from ._parser import DescriptionParser

__all__ = [
    "BaseDescription",
    "Boolean",
    "ClassDescription",
    "Comparator",
    "ConceptDescription",
    "Conjunction",
    "DataItem",
    "Description",
    "DescriptionParser",
    "Disjunction",
    "EntityRef",
    "GeoArea",
    "GeoCoord",
    "Namespace",
    "NamespaceDescription",
    "Number",
    "Property",
    "SomeProperty",
    "Text",
    "ThingDescription",
    "Time",
    "Uri",
    "ValueDescription",
    "ValueType",
]
