"""
Elastic Search.
"""

from __future__ import annotations

__all__ = ["Elasticsearch"]

from typing import Any

from elasticsearch import Elasticsearch as SyncElasticsearch

from semindex.cache import Cache
from semindex.core import Context, Provider, Response, info, warn
from semindex.core.exceptions import (
    BackendUnavailableError,
    BadRequestError,
)
from semindex.elastic import (
    ChangeDiff,
    ConceptLookup,
    ElasticConfig,
    ElasticConnection,
    EntityLookup,
    HierarchyLookup,
    IdResolver,
    Indexer,
    MemoryEntityStore,
    PropertyLookup,
    Query,
    QueryBuilder,
    QueryEngine,
    QueryResult,
    RecoveryJobRunner,
    RecoveryJobStatus,
    SortBuilder,
    TermsLookup,
)
from semindex.ql import EntityRef
from semindex.queue import Queue


class Elasticsearch(Provider):
    hosts: str | list[str] | dict[str, str | int] | None
    cloud_id: str | None
    api_key: str | tuple[str, str] | None
    basic_auth: str | tuple[str, str] | None
    verify_certs: bool | None
    ca_certs: str | None
    request_timeout: float | None

    config: ElasticConfig
    cache: Cache
    queue: Queue
    entity_store: Any
    ids: IdResolver
    entities: EntityLookup
    properties: PropertyLookup
    hierarchy: HierarchyLookup
    concepts: ConceptLookup
    fallback: Any | None
    origin: str
    nparams: dict[str, Any]

    _client: SyncElasticsearch
    _connection: ElasticConnection
    _engine: QueryEngine
    _indexer: Indexer
    _runner: RecoveryJobRunner

    _init: bool
    _pipeline_init: bool

    def __init__(
        self,
        hosts: str | list[str] | dict[str, str | int] | None = None,
        cloud_id: str | None = None,
        api_key: str | list[str] | None = None,
        basic_auth: str | list[str] | None = None,
        verify_certs: bool | None = None,
        ca_certs: str | None = None,
        request_timeout: float | None = None,
        config: str | dict | ElasticConfig | None = None,
        cache: dict | str | Cache | None = None,
        queue: dict | str | Queue | None = None,
        entity_store: Any | None = None,
        fallback: Any | None = None,
        origin: str = "",
        client: SyncElasticsearch | None = None,
        nparams: dict[str, Any] = dict(),
        **kwargs,
    ):
        """Initialize.

        Args:
            hosts:
                Cluster nodes, as urls or node dicts.
            cloud_id:
                Elastic Cloud deployment id, used instead of hosts.
            api_key:
                Encoded api key, or an id and key pair.
            basic_auth:
                User name and password pair.
            verify_certs:
                Whether TLS certificates are checked.
            ca_certs:
                Path to the CA bundle.
            request_timeout:
                Per request timeout in seconds.
            config:
                Subsystem configuration as a model, a dict,
                a YAML/JSON text or a file path.
            cache:
                Shared cache, or a cache provider
                (`memory`, `redis` or a provider dict).
                Defaults to an in-memory cache.
            queue:
                Recovery job queue, or a queue provider.
                Defaults to an in-memory queue.
            entity_store:
                Object implementing the id, entity, property,
                hierarchy and concept lookups. Defaults to an
                empty in-memory entity store.
            fallback:
                Store answering queries while the backend is
                unreachable. Used when the query config enables
                the no connection fallback.
            origin:
                Origin recorded on deferred writes.
            client:
                Client instance to use instead of creating one.
            nparams:
                Extra keyword arguments for the client.
        """
        self.hosts = hosts
        self.cloud_id = cloud_id
        self.api_key = _pair(api_key)
        self.basic_auth = _pair(basic_auth)
        self.verify_certs = verify_certs
        self.ca_certs = ca_certs
        self.request_timeout = request_timeout

        self.config = ElasticConfig.load(config)
        self.cache = self._init_cache(cache)
        self.queue = self._init_queue(queue)
        self.entity_store = entity_store or MemoryEntityStore()
        self.ids = self.entity_store
        self.entities = self.entity_store
        self.properties = self.entity_store
        self.hierarchy = self.entity_store
        self.concepts = self.entity_store
        self.fallback = fallback
        self.origin = origin
        self.nparams = nparams

        self._init = False
        self._pipeline_init = False
        if client is not None:
            self._client = client
            self._init = True
        super().__init__(**kwargs)

    def _init_cache(self, cache: dict | str | Cache | None) -> Cache:
        if isinstance(cache, Cache):
            return cache
        return Cache(
            namespace=self.config.index.prefix,
            __provider__=cache or "memory",
        )

    def _init_queue(self, queue: dict | str | Queue | None) -> Queue:
        if isinstance(queue, Queue):
            return queue
        return Queue(
            queue=f"{self.config.index.prefix}-recovery",
            __provider__=queue or "memory",
        )

    @property
    def client(self) -> SyncElasticsearch:
        if not self._init:
            if self.hosts is None and self.cloud_id is None:
                raise BadRequestError(
                    "Either hosts or cloud_id must be specified"
                )
            self._client = SyncElasticsearch(**self._get_client_params())
            self._init = True
        return self._client

    def __setup__(self, context: Context | None = None) -> None:
        if self._pipeline_init:
            return
        self._connection = ElasticConnection(
            client=self.client,
            config=self.config,
            cache=self.cache,
        )
        terms_lookup = TermsLookup(
            connection=self._connection,
            cache=self.cache,
            config=self.config,
        )
        query_builder = QueryBuilder(
            ids=self.ids,
            hierarchy=self.hierarchy,
            concepts=self.concepts,
            terms_lookup=terms_lookup,
            config=self.config.query,
            keyword_normalize=self.config.indexer.keyword_normalize,
        )
        sort_builder = SortBuilder(
            ids=self.ids,
            properties=self.properties,
            score_field=self.config.query.score_sortfield,
        )
        self._engine = QueryEngine(
            connection=self._connection,
            query_builder=query_builder,
            sort_builder=sort_builder,
            entities=self.entities,
            config=self.config.query,
        )
        self._indexer = Indexer(
            connection=self._connection,
            entities=self.entities,
            ids=self.ids,
            queue=self.queue,
            config=self.config,
            origin=self.origin,
        )
        self._runner = RecoveryJobRunner(
            queue=self.queue,
            indexer=self._indexer,
            config=self.config.replication,
        )
        self._pipeline_init = True

    def _get_client_params(self) -> dict:
        params = {
            "hosts": self.hosts,
            "cloud_id": self.cloud_id,
            "api_key": self.api_key,
            "basic_auth": self.basic_auth,
            "verify_certs": self.verify_certs,
            "ca_certs": self.ca_certs,
            "request_timeout": self.request_timeout,
        }
        args = {k: v for k, v in params.items() if v is not None}
        args.update(self.nparams or {})
        return args

    def query(
        self,
        query: dict | Query,
        **kwargs: Any,
    ) -> Response[QueryResult]:
        use_fallback = (
            self.fallback is not None
            and self.config.query.no_connection_fallback
        )
        if use_fallback and not self._connection.ping():
            return self._fallback_query(query)
        try:
            result = self._engine.execute(Query.model_validate(query))
        except BackendUnavailableError:
            if not use_fallback:
                raise
            return self._fallback_query(query)
        return Response(result=result)

    def _fallback_query(self, query: dict | Query) -> Response[QueryResult]:
        warn("Backend unavailable, query answered by the fallback store")
        response = self.fallback.query(query=query)
        if isinstance(response, Response):
            return response
        return Response(result=response)

    def replicate(
        self,
        change_diff: dict | ChangeDiff,
        **kwargs: Any,
    ) -> Response[bool]:
        result = self._indexer.safe_replicate(
            ChangeDiff.model_validate(change_diff)
        )
        return Response(result=result)

    def create(
        self,
        entity: dict | EntityRef,
        **kwargs: Any,
    ) -> Response[bool]:
        result = self._indexer.create(EntityRef.model_validate(entity))
        return Response(result=result)

    def delete(
        self,
        ids: list[int],
        is_concept: bool = False,
        **kwargs: Any,
    ) -> Response[bool]:
        result = self._indexer.delete(ids, is_concept=is_concept)
        return Response(result=result)

    def setup(self, **kwargs: Any) -> Response[dict[str, str]]:
        versions = self._indexer.setup()
        info("Indices ready: %s", versions)
        return Response(result=versions)

    def drop(self, **kwargs: Any) -> Response[None]:
        self._indexer.drop()
        return Response(result=None)

    def rollover(
        self,
        type: str,
        version: str,
        **kwargs: Any,
    ) -> Response[str | None]:
        self._connection.check_index(type)
        return Response(result=self._indexer.rollover(type, version))

    def run_recovery_jobs(
        self,
        max_count: int = 10,
        **kwargs: Any,
    ) -> Response[list[RecoveryJobStatus]]:
        return Response(result=self._runner.run(max_count=max_count))

    def close(self, **kwargs: Any) -> Response[None]:
        if self._init:
            self._client.close()
            self._init = False
        self._pipeline_init = False
        return Response(result=None)


def _pair(value: str | list[str] | None) -> str | tuple[str, str] | None:
    return tuple(value) if isinstance(value, list) else value
