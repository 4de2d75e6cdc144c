from __future__ import annotations

from typing import Any

from ._collaborators import IdResolver, PropertyLookup
from ._field_mapper import FieldMapper


class SortSpec:
    """Sort request derived from the sort keys of a query.

    Attributes:
        sort: Sort clauses keyed by field, in request order.
        sort_fields: Fields whose existence may be enforced.
        is_random: Whether random order was requested.
        is_constant_score: Whether the query may drop scoring.
    """

    def __init__(
        self,
        sort: dict[str, dict[str, str]] | None = None,
        sort_fields: list[str] | None = None,
        is_random: bool = False,
        is_constant_score: bool = True,
    ):
        self.sort = sort or dict()
        self.sort_fields = sort_fields or []
        self.is_random = is_random
        self.is_constant_score = is_constant_score

    def to_request(self) -> list[dict[str, Any]]:
        return [{field: order} for field, order in self.sort.items()]

    def __iter__(self):
        return iter(
            (
                self.sort,
                self.sort_fields,
                self.is_random,
                self.is_constant_score,
            )
        )


class SortBuilder:
    """Maps sort keys to Elasticsearch sort clauses."""

    DEFAULT_FIELDS = ("subject.sortkey.sort", "subject.title.sort")

    def __init__(
        self,
        ids: IdResolver,
        properties: PropertyLookup,
        score_field: str | None = None,
    ):
        self.ids = ids
        self.properties = properties
        self.score_field = score_field.lower() if score_field else None

    def make_sort_spec(
        self,
        sort_keys: dict[str, str],
        relevance_order: str | None = None,
    ) -> SortSpec:
        """Build the sort specification.

        Args:
            sort_keys: Property label (or chain `A.B`) to order.
                The empty key and `#` sort by the subject.
            relevance_order: Score order, takes precedence over
                the sort keys.
        """
        if relevance_order is not None:
            return SortSpec(
                sort={"_score": {"order": relevance_order}},
                is_constant_score=False,
            )

        spec = SortSpec()
        for key, order in sort_keys.items():
            order = order.lower()
            if "rand" in order:
                spec.is_random = True
            if self.score_field and key.lower() == self.score_field:
                key = "_score"
                spec.is_constant_score = False
            if key in ("", "#"):
                self._add_default_fields(spec, order)
            else:
                self._add_field(spec, key, order)
        return spec

    def _add_default_fields(self, spec: SortSpec, order: str) -> None:
        # Title breaks ties between equal sort keys
        for field in self.DEFAULT_FIELDS:
            spec.sort[field] = {"order": order}

    def _add_field(self, spec: SortSpec, key: str, order: str) -> None:
        labels = key.split(".")
        last = None
        for label in labels:
            if label == "_score":
                field = "_score"
                last = None
            else:
                property = self.properties.find_property(label)
                pid = FieldMapper.get_pid(self.ids.get_id(property))
                last = f"{pid}.{FieldMapper.get_field(property)}"
                field = f"{pid}.{FieldMapper.get_sort_field(property)}"
            if field not in spec.sort:
                spec.sort[field] = {"order": order}
        # Only the last hop of a chain is enforced
        if last is not None and last not in spec.sort_fields:
            spec.sort_fields.append(last)
