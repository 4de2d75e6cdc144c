from __future__ import annotations

from typing import Any

from semindex.ql import Comparator, Property, ValueType

RANGE_OPERATORS = {
    Comparator.GREATER: "gt",
    Comparator.GEQ: "gte",
    Comparator.LESS: "lt",
    Comparator.LEQ: "lte",
}


class FieldMapper:
    """Field names of the document schema and DSL fragment builders.

    Every builder is a pure function returning a new dict.
    """

    TYPE_FIELDS = {
        ValueType.TEXT: "txtField",
        ValueType.KEYWORD: "txtField",
        ValueType.PAGE: "wpgField",
        ValueType.URI: "uriField",
        ValueType.TIME: "datField",
        ValueType.NUMBER: "numField",
        ValueType.BOOLEAN: "booField",
        ValueType.GEO: "geoField",
    }

    ID_FIELD = "wpgID"

    @staticmethod
    def get_pid(id: int) -> str:
        return f"P:{id}"

    @staticmethod
    def get_field(property: Property) -> str:
        return FieldMapper.TYPE_FIELDS[property.value_type]

    @staticmethod
    def get_sort_field(property: Property) -> str:
        field = FieldMapper.get_field(property)
        if field in ("txtField", "wpgField", "uriField"):
            return f"{field}.sort"
        return field

    @staticmethod
    def normalize_keyword(value: str) -> str:
        """Keyword form shared by the indexer and the compiler."""
        return " ".join(value.split()).lower()

    @staticmethod
    def bool(condition: str, params: Any) -> dict:
        if not isinstance(params, list):
            params = [params]
        return {"bool": {condition: params}}

    @staticmethod
    def exists(field: str) -> dict:
        return {"exists": {"field": field}}

    @staticmethod
    def term(field: str, value: Any) -> dict:
        return {"term": {field: value}}

    @staticmethod
    def terms(field: str, value: Any) -> dict:
        # A dict value is a terms lookup reference
        if not isinstance(value, (list, dict)):
            value = [value]
        return {"terms": {field: value}}

    @staticmethod
    def match(
        field: str | list[str], value: Any, operator: str = "or"
    ) -> dict:
        if isinstance(field, list):
            return {
                "multi_match": {
                    "fields": field,
                    "query": value,
                    "operator": operator,
                }
            }
        return {"match": {field: {"query": value, "operator": operator}}}

    @staticmethod
    def match_phrase(field: str, value: Any) -> dict:
        return {"match_phrase": {field: value}}

    @staticmethod
    def query_string(fields: str | list[str], value: Any) -> dict:
        if not isinstance(fields, list):
            fields = [fields]
        return {"query_string": {"fields": fields, "query": value}}

    @staticmethod
    def range(field: str, value: Any, comparator: Comparator) -> dict:
        return {"range": {field: {RANGE_OPERATORS[comparator]: value}}}

    @staticmethod
    def constant_score(params: Any) -> dict:
        return {"constant_score": {"filter": params}}

    @staticmethod
    def geo_bounding_box(
        field: str, top: float, left: float, bottom: float, right: float
    ) -> dict:
        return {
            "geo_bounding_box": {
                field: {
                    "top_left": {"lat": top, "lon": left},
                    "bottom_right": {"lat": bottom, "lon": right},
                }
            }
        }

    @staticmethod
    def terms_lookup(index: str, id: str, path: str = "id") -> dict:
        return {"index": index, "id": id, "path": path}

    @staticmethod
    def function_score_random(query: dict) -> dict:
        return {
            "function_score": {
                "query": query,
                "random_score": {},
                "boost_mode": "sum",
            }
        }

    @staticmethod
    def match_nothing() -> dict:
        return FieldMapper.terms("_id", [])

    @staticmethod
    def field_filter(field: str, params: Any) -> Any:
        """Extract the id list (or lookup reference) filtering `field`.

        Returns an empty list when no terms clause on `field` exists.
        """
        if isinstance(params, list):
            for item in params:
                found = FieldMapper.field_filter(field, item)
                if found != []:
                    return found
            return []
        if not isinstance(params, dict):
            return []
        if "terms" in params and field in params["terms"]:
            return params["terms"][field]
        if "constant_score" in params:
            return FieldMapper.field_filter(
                field, params["constant_score"]["filter"]
            )
        if "bool" in params:
            return FieldMapper.field_filter(
                field, list(params["bool"].values())
            )
        return []

    @staticmethod
    def hierarchy(params: dict, pid: str, ids: list[int]) -> dict:
        """Repeat `params` for every hierarchy member and OR them."""
        if not ids:
            return params
        old = f"{pid}."
        copies = [params]
        for id in ids:
            new = f"{FieldMapper.get_pid(id)}."
            copies.append(_replace_field_prefix(params, old, new))
        return FieldMapper.bool("should", copies)


def _replace_field_prefix(node: Any, old: str, new: str) -> Any:
    def swap(value: Any) -> Any:
        if isinstance(value, str) and value.startswith(old):
            return new + value[len(old) :]
        return value

    if isinstance(node, list):
        return [_replace_field_prefix(n, old, new) for n in node]
    if not isinstance(node, dict):
        return node
    result: dict = {}
    for key, value in node.items():
        if key == "field":
            value = swap(value)
        elif key == "fields" and isinstance(value, list):
            value = [swap(v) for v in value]
        else:
            value = _replace_field_prefix(value, old, new)
        result[swap(key)] = value
    return result
