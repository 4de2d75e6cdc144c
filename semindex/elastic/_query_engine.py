from __future__ import annotations

from typing import Any

from semindex.core import debug
from semindex.ql import EntityRef, ThingDescription

from ._collaborators import EntityLookup
from ._config import QueryConfig
from ._connection import ElasticConnection
from ._field_mapper import FieldMapper
from ._models import Query, QueryMode, QueryResult
from ._query_builder import CompileContext, QueryBuilder
from ._sort_builder import SortBuilder

UNKNOWN_NAMESPACE = -1


class QueryEngine:
    """Runs a query against the data index.

    Sort keys are resolved first so that the compiler can enforce
    the existence of the sorted properties. Each call compiles into
    its own `CompileContext`, so one engine serves concurrent calls.
    """

    def __init__(
        self,
        connection: ElasticConnection,
        query_builder: QueryBuilder,
        sort_builder: SortBuilder,
        entities: EntityLookup,
        config: QueryConfig | None = None,
    ):
        self.connection = connection
        self.query_builder = query_builder
        self.sort_builder = sort_builder
        self.config = config or QueryConfig()
        self.result_converter = ResultConverter(entities)

    def execute(self, query: Query) -> QueryResult:
        """Execute a query.

        Args:
            query: Query request.

        Returns:
            Query result according to the query mode.

        Raises:
            BackendUnavailableError: Backend not reachable.
        """
        description = query.description
        errors: list[dict[str, Any]] = [
            {"message": error} for error in query.errors
        ]
        if (
            isinstance(description, ThingDescription)
            and query.mode != QueryMode.DEBUG
            and errors
        ):
            return QueryResult(errors=errors)
        if query.mode == QueryMode.NONE or query.limit < 1:
            return QueryResult(has_further_results=True)

        spec = self.sort_builder.make_sort_spec(
            query.sort_keys, query.relevance_order
        )
        context = CompileContext()
        q = self.query_builder.make_from_description(
            description,
            spec.is_constant_score,
            sort_fields=spec.sort_fields,
            context=context,
        )
        errors.extend(e.to_dict() for e in context.errors)
        query_info: dict[str, Any] = {
            "semindex": {},
            "elastic": list(context.query_info),
            "info": {},
        }
        if spec.is_random:
            q = FieldMapper.function_score_random(q)

        body: dict[str, Any] = {
            "_source": False,
            "from": query.offset,
            # One more than requested to detect further results
            "size": query.limit + 1,
            "query": q,
        }
        if not spec.is_random and spec.sort:
            body["sort"] = spec.to_request()
        if self.config.profile:
            body["profile"] = True

        index = self.connection.get_index_name(ElasticConnection.TYPE_DATA)
        query_info["elastic"].append({"index": index, "body": body})
        query_info["semindex"] = {
            "query": description.query_string,
            "sort": dict(query.sort_keys),
            "metrics": {
                "query_size": description.get_size(),
                "query_depth": description.get_depth(),
            },
        }

        if query.mode == QueryMode.DEBUG:
            return self._debug(index, q, errors, query_info, context)
        if query.mode == QueryMode.COUNT:
            return self._count(index, q, errors, query_info)
        return self._instance(query, index, body, errors, query_info)

    get_query_result = execute

    def _debug(
        self,
        index: str,
        q: dict,
        errors: list[dict[str, Any]],
        query_info: dict[str, Any],
        context: CompileContext,
    ) -> QueryResult:
        query_info["elastic"].append(
            self.connection.validate(index=index, query=q)
        )
        log = context.description_log
        if log:
            query_info["semindex"]["description_log"] = log
        return QueryResult(
            errors=errors,
            debug=query_info,
            query_info=query_info,
        )

    def _count(
        self,
        index: str,
        q: dict,
        errors: list[dict[str, Any]],
        query_info: dict[str, Any],
    ) -> QueryResult:
        count, count_errors = self.connection.count(index=index, query=q)
        errors.extend({"message": e} for e in count_errors)
        query_info["info"] = {"count": count}
        return QueryResult(
            count=count, errors=errors, query_info=query_info
        )

    def _instance(
        self,
        query: Query,
        index: str,
        body: dict,
        errors: list[dict[str, Any]],
        query_info: dict[str, Any],
    ) -> QueryResult:
        response, search_errors = self.connection.search(
            index=index, body=body
        )
        errors.extend({"message": e} for e in search_errors)
        results, info, has_further = self.result_converter.convert_search(
            response, query.limit
        )
        debug("Query %s matched %d", index, info.get("total", 0))
        query_info["info"] = info
        return QueryResult(
            results=results,
            has_further_results=has_further,
            errors=errors,
            query_info=query_info,
        )


class ResultConverter:
    """Maps search hits back to entities."""

    def __init__(self, entities: EntityLookup):
        self.entities = entities

    def convert_search(
        self, response: dict, limit: int
    ) -> tuple[list[EntityRef], dict[str, Any], bool]:
        hits = response.get("hits", {})
        items = hits.get("hits", [])
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)
        info = {
            "took": response.get("took"),
            "total": total,
            "max_score": hits.get("max_score"),
        }
        has_further = len(items) > limit
        results = [self.convert_id(hit["_id"]) for hit in items[:limit]]
        return results, info, has_further

    def convert_id(self, value: Any) -> EntityRef:
        try:
            id = int(value)
        except (TypeError, ValueError):
            id = None
        entity = self.entities.get_entity(id) if id is not None else None
        if entity is None:
            entity = EntityRef(
                title=f"SEMINDEX:UNKNOWN:{value}",
                namespace=UNKNOWN_NAMESPACE,
            )
        return entity
