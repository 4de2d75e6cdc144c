from __future__ import annotations

import itertools
from threading import Lock
from typing import Protocol, runtime_checkable

from semindex.ql import (
    Description,
    DescriptionParser,
    EntityRef,
    Property,
    ValueType,
)


@runtime_checkable
class IdResolver(Protocol):
    def get_id(self, item: EntityRef | Property) -> int:
        """Resolve an entity or property to its numeric id, 0 if unknown."""
        ...


@runtime_checkable
class EntityLookup(Protocol):
    def get_entity(self, id: int) -> EntityRef | None:
        """Resolve a numeric id back to the entity."""
        ...


@runtime_checkable
class PropertyLookup(Protocol):
    def find_property(self, label: str) -> Property:
        """Resolve a property label to a property with its value type."""
        ...


@runtime_checkable
class HierarchyLookup(Protocol):
    def get_consecutive_members(
        self, item: EntityRef | Property
    ) -> list[EntityRef | Property]:
        """Subcategories or subproperties ordered by distance."""
        ...


@runtime_checkable
class ConceptLookup(Protocol):
    def get_concept_query(self, concept: EntityRef) -> str | None:
        """Stored query of a concept as a description JSON document."""
        ...


class MemoryEntityStore:
    """In-process entity table.

    Implements every lookup the compiler and the indexer need.
    Ids are assigned on first resolution.
    """

    _ids: dict[str, int]
    _entities: dict[int, EntityRef]
    _properties: dict[str, Property]
    _hierarchy: dict[str, list[EntityRef | Property]]
    _concepts: dict[str, str]

    def __init__(self, start_id: int = 1):
        self._counter = itertools.count(start_id)
        self._lock = Lock()
        self._ids = dict()
        self._entities = dict()
        self._properties = dict()
        self._hierarchy = dict()
        self._concepts = dict()

    def _key(self, item: EntityRef | Property) -> str:
        if isinstance(item, Property):
            return f"property:{item.key}"
        return f"entity:{item.hash}"

    def add_entity(self, entity: EntityRef, id: int | None = None) -> int:
        key = self._key(entity)
        with self._lock:
            if key in self._ids and id is None:
                return self._ids[key]
            id = id if id is not None else next(self._counter)
            self._ids[key] = id
            self._entities[id] = entity
        return id

    def add_property(self, property: Property, id: int | None = None) -> int:
        property = property.as_direct()
        key = self._key(property)
        with self._lock:
            self._properties[property.key] = property
            if key in self._ids and id is None:
                return self._ids[key]
            id = id if id is not None else next(self._counter)
            self._ids[key] = id
        return id

    def add_hierarchy(
        self,
        item: EntityRef | Property,
        members: list[EntityRef] | list[Property],
    ) -> None:
        self._hierarchy[self._key(item)] = list(members)

    def add_concept(
        self, concept: EntityRef, description: Description | str
    ) -> None:
        if not isinstance(description, str):
            description = DescriptionParser.dumps(description)
        self._concepts[concept.hash] = description
        self.add_entity(concept)

    def get_id(self, item: EntityRef | Property) -> int:
        if isinstance(item, Property):
            item = item.as_direct()
        key = self._key(item)
        if key not in self._ids:
            if isinstance(item, Property):
                return self.add_property(item)
            return self.add_entity(item)
        return self._ids[key]

    def get_entity(self, id: int) -> EntityRef | None:
        return self._entities.get(id)

    def find_property(self, label: str) -> Property:
        key = label.strip().replace(" ", "_")
        inverse = key.startswith("-")
        key = key.lstrip("-")
        property = self._properties.get(key)
        if property is None:
            property = Property(key=key, value_type=ValueType.PAGE)
        return property.model_copy(update={"inverse": inverse})

    def get_consecutive_members(
        self, item: EntityRef | Property
    ) -> list[EntityRef | Property]:
        if isinstance(item, Property):
            item = item.as_direct()
        return list(self._hierarchy.get(self._key(item), []))

    def get_concept_query(self, concept: EntityRef) -> str | None:
        return self._concepts.get(concept.hash)
