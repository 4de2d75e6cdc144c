from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import model_validator

from semindex.cache import Cache
from semindex.core import DataModel
from semindex.core.exceptions import NotFoundError
from semindex.ql import Description, EntityRef, ValueType


class QueryMode(str, Enum):
    """Execution mode of a query."""

    INSTANCE = "instance"
    COUNT = "count"
    DEBUG = "debug"
    NONE = "none"


class Query(DataModel):
    """Query request."""

    description: Description
    """Root description."""

    sort_keys: dict[str, str] = dict()
    """Sort key to order (asc, desc, rand).
    The empty key sorts by the subject sort key."""

    relevance_order: str | None = None
    """Score order, overrides the sort keys."""

    limit: int = 50
    """Maximum number of results."""

    offset: int = 0
    """Result offset."""

    mode: QueryMode = QueryMode.INSTANCE
    """Execution mode."""

    errors: list[str] = []
    """Errors found before compiling, for example by the parser."""


class QueryResult(DataModel):
    """Query result."""

    results: list[EntityRef] = []
    """Matched subjects in result order."""

    count: int | None = None
    """Total count, set in count mode."""

    has_further_results: bool = False
    """Whether more results exist after the limit."""

    errors: list[dict[str, Any]] = []
    """Compile and backend errors."""

    debug: dict[str, Any] | None = None
    """Trace returned in debug mode."""

    query_info: dict[str, Any] = dict()
    """Compile and execution diagnostics."""


class PropertyInfo(DataModel):
    """Property referenced by a change diff."""

    key: str
    value_type: ValueType = ValueType.PAGE


class FieldChangeOp(DataModel):
    """Row level change of one property value.

    A row carries exactly one typed payload. Rows without a
    property id only register the subject.
    """

    op: Literal["insert", "delete"] = "insert"
    subject_id: int | None = None
    property_id: int | None = None

    text: str | None = None
    """Text value, may be None for long values only kept as hash."""

    text_hash: str | None = None
    """Text hash, also used as keyword form."""

    uri: str | None = None
    date: float | None = None
    """Julian day number."""

    number: float | None = None
    boolean: bool | None = None
    entity_id: int | None = None
    geo: str | None = None
    """Serialized "lat,lon" coordinate."""

    @model_validator(mode="after")
    def _check_payload(self) -> FieldChangeOp:
        kinds = self.payload_kinds()
        if len(kinds) > 1:
            raise ValueError(f"Ambiguous payload: {', '.join(kinds)}")
        if self.property_id is not None and not kinds:
            raise ValueError("Property row without payload")
        return self

    def payload_kinds(self) -> list[str]:
        kinds = []
        if self.text is not None or self.text_hash is not None:
            kinds.append("text")
        for name in ("uri", "date", "number", "boolean", "entity_id", "geo"):
            if getattr(self, name) is not None:
                kinds.append(name)
        return kinds


class TableChangeOp(DataModel):
    """Change operations of one property table."""

    table_name: str
    property_key: str | None = None
    """Key of a fixed property table, None for shared tables."""

    field_change_ops: list[FieldChangeOp] = []

    EMBEDDED_OBJECT_KEYS: ClassVar[tuple[str, ...]] = ("_SOBJ",)

    def is_embedded_object(self) -> bool:
        return self.property_key in self.EMBEDDED_OBJECT_KEYS

    def get_field_change_ops(
        self, op: Literal["insert", "delete"] | None = None
    ) -> list[FieldChangeOp]:
        if op is None:
            return list(self.field_change_ops)
        return [f for f in self.field_change_ops if f.op == op]


class ChangeDiff(DataModel):
    """Changes of one update transaction for one subject.

    `table_change_ops` holds the inserts and deletes of the
    transaction. `data_ops` holds the current rows of the subject
    and its subobjects.
    """

    subject: EntityRef
    subject_id: int

    table_change_ops: list[TableChangeOp] = []
    data_ops: list[TableChangeOp] = []

    properties: dict[int, PropertyInfo] = dict()
    """Properties referenced by the rows, keyed by id."""

    CACHE_PREFIX: ClassVar[str] = "changediff"

    @staticmethod
    def get_cache_key(subject: EntityRef) -> str:
        return f"{ChangeDiff.CACHE_PREFIX}:{subject.hash}"

    def save(self, cache: Cache, ttl: float | None = None) -> None:
        """Save the diff so that a recovery job can replay it.

        Args:
            cache: Shared cache.
            ttl: Lifetime in seconds.
        """
        cache.put(
            key=ChangeDiff.get_cache_key(self.subject),
            value=self.model_dump(mode="json"),
            ttl=ttl,
        )

    @staticmethod
    def fetch(cache: Cache, subject: EntityRef) -> ChangeDiff | None:
        try:
            value = cache.get(key=ChangeDiff.get_cache_key(subject)).result
        except NotFoundError:
            return None
        return ChangeDiff.from_dict(value)
