from __future__ import annotations

from typing import Any

from elasticsearch import ApiError
from elasticsearch import ConnectionError as ESConnectionError
from elasticsearch import Elasticsearch as SyncElasticsearch
from elasticsearch import TransportError

from semindex.cache import Cache
from semindex.core import debug, warn
from semindex.core.exceptions import (
    BackendUnavailableError,
    ConfigurationError,
    NotFoundError,
)

from ._config import ElasticConfig
from ._mappings import IndexMappings


class ElasticConnection:
    """Index aware wrapper around the Elasticsearch client.

    Knows the data and lookup index names, the v1/v2 generation
    naming and the replication lock kept in the shared cache.
    """

    TYPE_DATA = "data"
    TYPE_LOOKUP = "lookup"
    VERSIONS = ("v1", "v2")

    client: SyncElasticsearch
    config: ElasticConfig
    cache: Cache

    def __init__(
        self,
        client: SyncElasticsearch,
        config: ElasticConfig,
        cache: Cache,
    ):
        self.client = client
        self.config = config
        self.cache = cache

    def get_index_name(self, type: str) -> str:
        return f"{self.config.index.prefix}-{type}"

    def get_version_name(self, type: str, version: str) -> str:
        return f"{self.get_index_name(type)}-{version}"

    def get_index_body(self, type: str) -> dict:
        if type == self.TYPE_LOOKUP:
            return IndexMappings.lookup(self.config.index)
        return IndexMappings.data(self.config.index)

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except (ESConnectionError, TransportError) as e:
            debug("Ping failed: %s", e)
            return False

    def _lock_key(self, type: str) -> str:
        return f"lock:{self.get_index_name(type)}"

    def has_lock(self, type: str) -> bool:
        return self.cache.exists(key=self._lock_key(type)).result

    def get_lock(self, type: str) -> str | None:
        try:
            return self.cache.get(key=self._lock_key(type)).result
        except NotFoundError:
            return None

    def set_lock(self, type: str, version: str) -> None:
        self.cache.put(key=self._lock_key(type), value=version)

    def release_lock(self, type: str) -> None:
        try:
            self.cache.delete(key=self._lock_key(type))
        except NotFoundError:
            pass

    def search(self, index: str, body: dict) -> tuple[dict, list[str]]:
        """Run a search, returning the response and any request errors.

        Args:
            index: Index or alias name.
            body: Request body in wire format (`_source`, `from`, ...).
        """
        try:
            response = self.client.search(index=index, **_to_kwargs(body))
        except ApiError as e:
            warn("Search failed on %s: %s", index, e)
            return {}, [str(e)]
        except (ESConnectionError, TransportError) as e:
            raise BackendUnavailableError(str(e)) from e
        return _to_dict(response), []

    def count(self, index: str, query: dict) -> tuple[int, list[str]]:
        try:
            response = self.client.count(index=index, query=query)
        except ApiError as e:
            warn("Count failed on %s: %s", index, e)
            return 0, [str(e)]
        except (ESConnectionError, TransportError) as e:
            raise BackendUnavailableError(str(e)) from e
        return int(_to_dict(response).get("count", 0)), []

    def validate(self, index: str, query: dict) -> dict:
        try:
            response = self.client.indices.validate_query(
                index=index, query=query, explain=True
            )
        except ApiError as e:
            return {"valid": False, "error": str(e)}
        except (ESConnectionError, TransportError) as e:
            raise BackendUnavailableError(str(e)) from e
        return _to_dict(response)

    def index(self, index: str, id: str | int, document: dict) -> None:
        try:
            self.client.index(index=index, id=str(id), document=document)
        except (ESConnectionError, TransportError) as e:
            raise BackendUnavailableError(str(e)) from e

    def refresh(self, index: str) -> None:
        try:
            self.client.indices.refresh(index=index)
        except (ESConnectionError, TransportError) as e:
            raise BackendUnavailableError(str(e)) from e

    def bulk(self, operations: list[dict]) -> dict:
        """Send a bulk request.

        Raises:
            BackendUnavailableError: Backend not reachable.
            ApiError: Request rejected as a whole.
        """
        if not operations:
            return {"errors": False, "items": []}
        try:
            response = _to_dict(self.client.bulk(operations=operations))
        except (ESConnectionError, TransportError) as e:
            raise BackendUnavailableError(str(e)) from e
        if response.get("errors"):
            failed = [
                item
                for item in response.get("items", [])
                for action in item.values()
                if action.get("error")
            ]
            warn("Bulk request had %d failed items", len(failed))
        return response

    def index_exists(self, name: str) -> bool:
        return bool(self.client.indices.exists(index=name))

    def alias_exists(self, name: str) -> bool:
        return bool(self.client.indices.exists_alias(name=name))

    def get_alias_targets(self, name: str) -> list[str]:
        if not self.alias_exists(name):
            return []
        response = _to_dict(self.client.indices.get_alias(name=name))
        return sorted(response.keys())

    def create_index(self, name: str, body: dict) -> bool:
        try:
            self.client.indices.create(index=name, **body)
        except ApiError as e:
            if e.error == "resource_already_exists_exception":
                return False
            raise e
        return True

    def delete_index(self, name: str) -> bool:
        try:
            self.client.indices.delete(index=name)
        except ApiError as e:
            if getattr(e, "error", None) == "index_not_found_exception":
                return False
            raise e
        return True

    def update_aliases(self, actions: list[dict]) -> None:
        self.client.indices.update_aliases(actions=actions)

    def get_write_index(self, type: str) -> str:
        """Index that receives writes.

        While a rebuild holds the lock the new generation is written
        directly, otherwise the alias.
        """
        version = self.get_lock(type)
        if version:
            return self.get_version_name(type, version)
        return self.get_index_name(type)

    def check_index(self, type: str) -> None:
        name = self.get_index_name(type)
        if not self.alias_exists(name):
            raise ConfigurationError(
                f"Index alias {name} is missing, run setup or rebuild"
            )

    def close(self) -> None:
        self.client.close()


def _to_kwargs(body: dict) -> dict[str, Any]:
    renamed = {"_source": "source", "from": "from_"}
    return {renamed.get(k, k): v for k, v in body.items()}


def _to_dict(response: Any) -> dict:
    if isinstance(response, dict):
        return response
    body = getattr(response, "body", None)
    if isinstance(body, dict):
        return body
    return dict(response)
