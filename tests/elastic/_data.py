from types import SimpleNamespace

from common.fake_elasticsearch import FakeElasticsearch

from semindex.cache import Cache
from semindex.elastic import (
    ElasticConfig,
    ElasticConnection,
    Indexer,
    MemoryEntityStore,
    QueryBuilder,
    QueryEngine,
    RecoveryJobRunner,
    SortBuilder,
    TermsLookup,
)
from semindex.ql import EntityRef, Namespace, Property, ValueType
from semindex.queue import Queue

foo = EntityRef(title="Foo", namespace=Namespace.CATEGORY)
bar = EntityRef(title="Bar", namespace=Namespace.CATEGORY)
baz = EntityRef(title="Baz", namespace=Namespace.CATEGORY)
berlin = EntityRef(title="Berlin")
germany = EntityRef(title="Germany")
concept = EntityRef(title="Big_cities", namespace=Namespace.CONCEPT)

age = Property(key="Age", value_type=ValueType.NUMBER)
name = Property(key="Name", value_type=ValueType.TEXT)
code = Property(key="Code", value_type=ValueType.KEYWORD)
homepage = Property(key="Homepage", value_type=ValueType.URI)
founded = Property(key="Founded", value_type=ValueType.TIME)
located_in = Property(key="Located_in", value_type=ValueType.PAGE)
population = Property(key="Population", value_type=ValueType.NUMBER)
coordinates = Property(key="Coordinates", value_type=ValueType.GEO)


def make_entity_store() -> MemoryEntityStore:
    store = MemoryEntityStore(start_id=100)
    store.add_property(Property.instance_of(), id=1)
    for id, entity in enumerate(
        [foo, bar, baz, berlin, germany, concept], start=10
    ):
        store.add_entity(entity, id=id)
    for id, property in enumerate(
        [age, name, code, homepage, founded, located_in, population],
        start=20,
    ):
        store.add_property(property, id=id)
    store.add_property(coordinates, id=27)
    return store


def make_config(**sections) -> ElasticConfig:
    return ElasticConfig.from_dict(sections)


def make_pipeline(
    config: ElasticConfig | None = None,
    entity_store: MemoryEntityStore | None = None,
) -> SimpleNamespace:
    """Wire the subsystem on a fake client and in-memory components."""
    config = config or ElasticConfig()
    entity_store = entity_store or make_entity_store()
    client = FakeElasticsearch()
    cache = Cache(namespace="test", __provider__="memory")
    queue = Queue(queue="test-recovery", __provider__="memory")
    connection = ElasticConnection(client=client, config=config, cache=cache)
    terms_lookup = TermsLookup(
        connection=connection, cache=cache, config=config
    )
    builder = QueryBuilder(
        ids=entity_store,
        hierarchy=entity_store,
        concepts=entity_store,
        terms_lookup=terms_lookup,
        config=config.query,
        keyword_normalize=config.indexer.keyword_normalize,
    )
    sort_builder = SortBuilder(
        ids=entity_store,
        properties=entity_store,
        score_field=config.query.score_sortfield,
    )
    engine = QueryEngine(
        connection=connection,
        query_builder=builder,
        sort_builder=sort_builder,
        entities=entity_store,
        config=config.query,
    )
    indexer = Indexer(
        connection=connection,
        entities=entity_store,
        ids=entity_store,
        queue=queue,
        config=config,
        origin="test",
    )
    runner = RecoveryJobRunner(
        queue=queue, indexer=indexer, config=config.replication
    )
    return SimpleNamespace(
        config=config,
        entity_store=entity_store,
        client=client,
        cache=cache,
        queue=queue,
        connection=connection,
        terms_lookup=terms_lookup,
        builder=builder,
        sort_builder=sort_builder,
        engine=engine,
        indexer=indexer,
        runner=runner,
    )


def hits(*ids: int) -> list[dict]:
    return [{"_id": str(id), "_source": {}} for id in ids]
