from __future__ import annotations

import hashlib
import json
from typing import Any

from semindex.cache import Cache
from semindex.core import debug
from semindex.core.exceptions import NotFoundError
from semindex.ql import Description, EntityRef, SomeProperty

from ._config import ElasticConfig
from ._connection import ElasticConnection
from ._field_mapper import FieldMapper


def structural_hash(value: Any) -> str:
    """Hash of the canonical JSON form of a query fragment."""
    canonical = json.dumps(
        value, sort_keys=True, separators=(",", ":"), default=str
    )
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


class TermsLookup:
    """Executes intermediate queries the backend cannot nest.

    Results below the write threshold are returned inline as an
    id list. Larger results are stored as a document in the lookup
    index and referenced through a terms lookup. Both forms are
    cached so that an identical subquery does not hit the backend
    again within the cache lifetime.

    Every lookup appends a diagnostics record to the `query_info`
    list passed by the caller. The lookup keeps no state between
    calls and is shared by concurrent compiles.
    """

    CACHE_NAMESPACE = "semindex:elastic:lookup"

    connection: ElasticConnection
    cache: Cache
    config: ElasticConfig

    def __init__(
        self,
        connection: ElasticConnection,
        cache: Cache,
        config: ElasticConfig,
    ):
        self.connection = connection
        self.cache = cache
        self.config = config

    @property
    def threshold(self) -> int:
        return (
            self.config.subquery.terms_lookup_result_size_index_write_threshold
        )

    @property
    def concept_threshold(self) -> int:
        subquery = self.config.subquery
        return subquery.concept_terms_lookup_result_size_index_write_threshold

    def lookup(
        self,
        key: str,
        field: str,
        params: Any,
        query_info: list[dict[str, Any]] | None = None,
    ) -> dict:
        """Resolve the subjects matching `params` into a filter on `field`.

        Args:
            key: Readable identifier of the subquery.
            field: Field that must contain one of the matched ids.
            params: Subquery clauses.
            query_info: Receives the diagnostics of the lookup.
        """
        body = self._make_body(self._wrap(params, True))
        info = _record(query_info, predefined_lookup_query=key, query=body)
        id = "pre:" + structural_hash(body)
        ids = self._materialize(id, body, info, key)
        return self._terms(field, ids)

    def lookup_some_property(
        self,
        description: SomeProperty,
        chain_field: str,
        params: Any,
        query_info: list[dict[str, Any]] | None = None,
    ) -> dict:
        """Resolve one member of a property chain.

        Args:
            description: Chain member being resolved.
            chain_field: Field of the outer property holding the ids.
            params: Compiled clauses of the chain member.
            query_info: Receives the diagnostics of the lookup.
        """
        body = self._make_body(
            self._wrap(params, self.config.subquery.constant_score)
        )
        info = _record(
            query_info,
            lookup_query=(
                f"{description.property.key} → {description.query_string}"
            ),
            query=body,
        )
        id = structural_hash(body)
        ids = self._materialize(id, body, info)
        return self._terms(chain_field, ids)

    def lookup_concept(
        self,
        concept: EntityRef,
        concept_id: int,
        description: Description,
        params: Any,
        query_info: list[dict[str, Any]] | None = None,
    ) -> dict:
        """Prefetch the members of a concept.

        The lookup document id is derived from the concept id so
        that deleting the concept can remove it. Concepts have their
        own write threshold and cache lifetime.

        Args:
            concept: Concept entity.
            concept_id: Resolved concept id.
            description: Parsed concept query.
            params: Compiled concept query.
            query_info: Receives the diagnostics of the lookup.
        """
        body = self._make_body(
            self._wrap(params, self.config.subquery.constant_score)
        )
        info = _record(
            query_info,
            concept_lookup_query=(
                f"{concept.hash} → {description.query_string}"
            ),
            query=body,
        )
        id = concept_lookup_id(concept_id)
        ids = self._materialize(
            id,
            body,
            info,
            description.fingerprint,
            threshold=self.concept_threshold,
            ttl=self.config.subquery.concept_terms_lookup_cache_lifetime,
        )
        return self._terms("_id", ids)

    def lookup_inverse(
        self,
        key: str,
        field: str,
        params: Any,
        query_info: list[dict[str, Any]] | None = None,
    ) -> dict:
        """Follow a property from object to subject.

        Reads `field` of the documents matched by `params` (ids or a
        lookup reference) and returns a filter on those values.

        Args:
            key: Readable identifier of the inverse lookup.
            field: Entity id field of the property, `P:<id>.wpgID`.
            params: Ids of the objects or a lookup reference.
            query_info: Receives the diagnostics of the lookup.
        """
        info = _record(
            query_info,
            inverse_lookup_query=key,
            query="Failed with invalid or unmatchable ID",
        )
        if params in ([], 0, None):
            return self._terms("_id", [])
        query = FieldMapper.constant_score(
            FieldMapper.bool("must", FieldMapper.terms("_id", params))
        )
        body = self._make_body(query, source=[field])
        info["query"] = body
        id = "in:" + structural_hash(params)
        ids = self._materialize(id, body, info, key, field=field)
        return self._terms("_id", ids)

    def _wrap(self, params: Any, constant_score: bool) -> dict:
        query = FieldMapper.bool("must", params)
        if constant_score:
            query = FieldMapper.constant_score(query)
        return query

    def _make_body(self, query: dict, source: Any = False) -> dict:
        return {
            "_source": source,
            "query": query,
            "size": self.config.subquery.size,
        }

    def _terms(self, field: str, ids: Any) -> dict:
        params = FieldMapper.terms(field, ids)
        if self.config.subquery.constant_score:
            params = FieldMapper.constant_score(params)
        return params

    def _get_cache_key(self, id: str, threshold: int, *extra: str) -> str:
        parts = [id, str(threshold), *extra]
        return f"{self.CACHE_NAMESPACE}:{structural_hash(parts)}"

    def _materialize(
        self,
        id: str,
        body: dict,
        info: dict[str, Any],
        *extra: str,
        field: str | None = None,
        threshold: int | None = None,
        ttl: float | None = None,
    ) -> list | dict:
        if threshold is None:
            threshold = self.threshold
        if ttl is None:
            ttl = self.config.subquery.terms_lookup_cache_lifetime
        key = self._get_cache_key(id, threshold, *extra)
        try:
            cached = self.cache.get(key=key).result
        except NotFoundError:
            cached = None
        if cached is not None:
            info["count"] = cached["count"]
            info["is_from_cache"] = {"id": id}
            if "ref" in cached:
                return cached["ref"]
            return cached["ids"]

        response, errors = self.connection.search(
            index=self.connection.get_index_name(
                ElasticConnection.TYPE_DATA
            ),
            body=body,
        )
        if errors:
            info["errors"] = errors
        hits = response.get("hits", {})
        count = _get_total(hits)
        if field is None:
            ids = [_to_id(hit["_id"]) for hit in hits.get("hits", [])]
        else:
            ids = _extract_field(hits.get("hits", []), field)
            if not ids:
                count = 0
        info["count"] = count
        info["is_from_cache"] = False
        debug("Terms lookup %s matched %d", id, count)

        if count >= threshold and ids:
            ref = self._create(id, ids)
            self.cache.put(
                key=key, value={"count": count, "ref": ref}, ttl=ttl
            )
            return ref
        if not errors:
            self.cache.put(
                key=key, value={"count": count, "ids": ids}, ttl=ttl
            )
        return ids

    def _create(self, id: str, ids: list) -> dict:
        index = self.connection.get_index_name(ElasticConnection.TYPE_LOOKUP)
        self.connection.index(index=index, id=id, document={"id": ids})
        # The reference is used by the very next search
        self.connection.refresh(index=index)
        return FieldMapper.terms_lookup(index, id, "id")


def concept_lookup_id(concept_id: int) -> str:
    return hashlib.md5(str(concept_id).encode("utf-8")).hexdigest()


def _get_total(hits: dict) -> int:
    total = hits.get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


def _to_id(value: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def _extract_field(hits: list[dict], field: str) -> list:
    pid, _, name = field.partition(".")
    result: list = []
    for hit in hits:
        values = hit.get("_source", {}).get(pid, {}).get(name, [])
        if not isinstance(values, list):
            values = [values]
        for value in values:
            if value not in result:
                result.append(value)
    return result


def _record(
    query_info: list[dict[str, Any]] | None, **info: Any
) -> dict[str, Any]:
    if query_info is not None:
        query_info.append(info)
    return info
