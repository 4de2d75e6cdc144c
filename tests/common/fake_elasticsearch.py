import copy
from types import SimpleNamespace
from typing import Any, Callable

from elasticsearch import ApiError
from elasticsearch import BadRequestError as ESBadRequestError
from elasticsearch import ConnectionError as ESConnectionError
from elasticsearch import NotFoundError as ESNotFoundError


def _api_error(cls: type, status: int, error: str) -> ApiError:
    return cls(
        message=error,
        meta=SimpleNamespace(status=status),
        body={"error": {"type": error}},
    )


class FakeIndices:
    def __init__(self, client: "FakeElasticsearch"):
        self.client = client

    def exists(self, index: str) -> bool:
        self.client._check()
        return index in self.client.docs or bool(
            self.client.aliases.get(index)
        )

    def exists_alias(self, name: str) -> bool:
        self.client._check()
        return bool(self.client.aliases.get(name))

    def get_alias(self, name: str) -> dict:
        targets = self.client.aliases.get(name, set())
        return {index: {"aliases": {name: {}}} for index in targets}

    def create(self, index: str, **kwargs: Any) -> dict:
        self.client._check()
        if index in self.client.docs:
            raise _api_error(
                ESBadRequestError, 400, "resource_already_exists_exception"
            )
        self.client.docs[index] = dict()
        self.client.bodies[index] = kwargs
        return {"acknowledged": True, "index": index}

    def delete(self, index: str) -> dict:
        self.client._check()
        if index not in self.client.docs:
            raise _api_error(ESNotFoundError, 404, "index_not_found_exception")
        self.client.docs.pop(index)
        for targets in self.client.aliases.values():
            targets.discard(index)
        return {"acknowledged": True}

    def update_aliases(self, actions: list[dict]) -> dict:
        self.client._check()
        for action in actions:
            for name, spec in action.items():
                targets = self.client.aliases.setdefault(spec["alias"], set())
                if name == "add":
                    targets.add(spec["index"])
                else:
                    targets.discard(spec["index"])
        return {"acknowledged": True}

    def refresh(self, index: str) -> dict:
        self.client.refreshed.append(index)
        return {}

    def validate_query(self, index: str, query: dict, **kwargs) -> dict:
        self.client._check()
        return {"valid": True, "explanations": [{"index": index}]}


class FakeElasticsearch:
    """In-memory stand-in for the sync Elasticsearch client.

    Documents are kept per concrete index, aliases resolve to their
    targets. Searches return every document of the index unless a
    `search_handler` is set, which receives the index and the
    request keyword arguments and returns the hits.
    A `write_error` is raised by index and bulk requests, so a
    write can fail although the ping succeeds.
    """

    def __init__(self):
        self.available = True
        self.docs: dict[str, dict[str, dict]] = dict()
        self.aliases: dict[str, set[str]] = dict()
        self.bodies: dict[str, dict] = dict()
        self.searches: list[tuple[str, dict]] = []
        self.bulks: list[list[dict]] = []
        self.refreshed: list[str] = []
        self.search_handler: Callable[[str, dict], list[dict]] | None = None
        self.search_error: ApiError | None = None
        self.write_error: Exception | None = None
        self.indices = FakeIndices(self)
        self.closed = False

    def _check(self) -> None:
        if not self.available:
            raise ESConnectionError("Connection refused")

    def _resolve(self, index: str) -> str:
        targets = self.aliases.get(index)
        if targets:
            return sorted(targets)[0]
        return index

    def ping(self) -> bool:
        return self.available

    def search(self, index: str, **kwargs: Any) -> dict:
        self._check()
        self.searches.append((index, copy.deepcopy(kwargs)))
        if self.search_error is not None:
            raise self.search_error
        if self.search_handler is not None:
            hits = self.search_handler(index, kwargs)
        else:
            docs = self.docs.get(self._resolve(index), {})
            hits = [
                {"_id": id, "_source": copy.deepcopy(doc)}
                for id, doc in docs.items()
            ]
        size = kwargs.get("size")
        start = kwargs.get("from_", 0)
        page = hits[start : start + size if size is not None else None]
        return {
            "took": 1,
            "hits": {
                "total": {"value": len(hits), "relation": "eq"},
                "max_score": 1.0,
                "hits": page,
            },
        }

    def count(self, index: str, query: dict) -> dict:
        self._check()
        self.searches.append((index, {"query": query, "count": True}))
        return {"count": len(self.docs.get(self._resolve(index), {}))}

    def index(self, index: str, id: str, document: dict) -> dict:
        self._check()
        if self.write_error is not None:
            raise self.write_error
        docs = self.docs.setdefault(self._resolve(index), dict())
        docs[id] = copy.deepcopy(document)
        return {"_id": id, "result": "created"}

    def bulk(self, operations: list[dict]) -> dict:
        self._check()
        if self.write_error is not None:
            raise self.write_error
        self.bulks.append(copy.deepcopy(operations))
        items = []
        i = 0
        while i < len(operations):
            action, spec = next(iter(operations[i].items()))
            docs = self.docs.setdefault(self._resolve(spec["_index"]), dict())
            id = spec["_id"]
            if action == "delete":
                found = docs.pop(id, None) is not None
                items.append(
                    {"delete": {"_id": id, "status": 200 if found else 404}}
                )
                i += 1
                continue
            source = operations[i + 1]
            if action == "update":
                current = docs.get(id)
                if current is None and source.get("doc_as_upsert"):
                    current = dict()
                if current is not None:
                    current.update(copy.deepcopy(source["doc"]))
                    docs[id] = current
            else:
                docs[id] = copy.deepcopy(source)
            items.append({action: {"_id": id, "status": 200}})
            i += 2
        return {"errors": False, "items": items}

    def close(self) -> None:
        self.closed = True


def connection_lost() -> ESConnectionError:
    return ESConnectionError("Connection reset by peer")


def api_error(status: int, error: str) -> ApiError:
    return _api_error(ApiError, status, error)
