# type: ignore
import pytest
from common.fake_elasticsearch import connection_lost

from semindex.core.exceptions import (
    BackendUnavailableError,
    ConfigurationError,
)
from semindex.elastic import (
    ChangeDiff,
    FieldChangeOp,
    Indexer,
    PropertyInfo,
    RecoveryJob,
    TableChangeOp,
)
from semindex.elastic._indexer import clean_sortkey
from semindex.elastic._terms_lookup import concept_lookup_id
from semindex.ql import EntityRef, ValueType

from ._data import berlin, make_config, make_pipeline

BERLIN = {
    "title": "Berlin",
    "subobject": "",
    "namespace": 0,
    "interwiki": "",
    "sortkey": "Berlin",
}


def make_diff(*rows: FieldChangeOp, deletes=()) -> ChangeDiff:
    return ChangeDiff(
        subject=berlin,
        subject_id=13,
        table_change_ops=list(deletes),
        data_ops=[TableChangeOp(table_name="data", field_change_ops=rows)],
        properties={
            21: PropertyInfo(key="Name", value_type=ValueType.TEXT),
            22: PropertyInfo(key="Code", value_type=ValueType.KEYWORD),
            25: PropertyInfo(key="Located_in"),
            26: PropertyInfo(key="Population", value_type=ValueType.NUMBER),
        },
    )


def located_in_germany() -> ChangeDiff:
    return make_diff(
        FieldChangeOp(subject_id=13, property_id=26, number=3.6e6),
        FieldChangeOp(subject_id=13, property_id=25, entity_id=14),
    )


def pulled(p) -> list:
    items = p.queue.pull(config={"max_count": 10}).result
    return [RecoveryJob.from_message(item.value) for item in items]


def test_setup():
    p = make_pipeline()
    assert p.indexer.setup() == {
        "data": "semindex-data-v1",
        "lookup": "semindex-lookup-v1",
    }
    assert p.client.aliases["semindex-data"] == {"semindex-data-v1"}
    assert p.client.aliases["semindex-lookup"] == {"semindex-lookup-v1"}
    assert "mappings" in p.client.bodies["semindex-data-v1"]
    p.connection.check_index("data")

    # Running it again keeps the active generation
    assert p.indexer.setup()["data"] == "semindex-data-v1"


def test_setup_reconciles():
    p = make_pipeline()
    p.client.indices.create(index="semindex-data")
    p.client.indices.create(index="semindex-lookup-v1")
    p.client.indices.create(index="semindex-lookup-v2")
    assert p.indexer.setup() == {
        "data": "semindex-data-v1",
        "lookup": "semindex-lookup-v1",
    }
    assert "semindex-data" not in p.client.docs
    assert "semindex-lookup-v2" not in p.client.docs

    p = make_pipeline()
    p.client.indices.create(index="semindex-data-v2")
    assert p.indexer.setup()["data"] == "semindex-data-v2"


def test_check_index():
    p = make_pipeline()
    with pytest.raises(ConfigurationError):
        p.connection.check_index("data")


def test_rollover():
    p = make_pipeline()
    p.indexer.setup()
    p.connection.set_lock("data", "v2")
    assert p.indexer.rollover("data", "v2") == "semindex-data-v1"
    assert p.client.aliases["semindex-data"] == {"semindex-data-v2"}
    assert "semindex-data-v1" not in p.client.docs
    assert not p.connection.has_lock("data")

    with pytest.raises(ValueError):
        p.indexer.rollover("data", "v3")


def test_drop():
    p = make_pipeline()
    p.indexer.setup()
    p.connection.set_lock("data", "v2")
    p.indexer.drop()
    assert p.client.docs == {}
    assert not p.connection.has_lock("data")


def test_map_change_diff():
    p = make_pipeline()
    operations = p.indexer.map_change_diff(located_in_germany(), "idx")
    assert operations == [
        {"update": {"_index": "idx", "_id": "14"}},
        {"doc": {"noop": []}, "doc_as_upsert": True},
        {"index": {"_index": "idx", "_id": "13"}},
        {
            "subject": BERLIN,
            "P:26": {"numField": [3600000.0]},
            "P:25": {"wpgField": ["Germany"], "wpgID": [14]},
        },
    ]


def test_replicate_is_idempotent():
    p = make_pipeline()
    p.indexer.setup()
    diff = located_in_germany()
    assert p.indexer.safe_replicate(diff)
    first = dict(p.client.docs["semindex-data-v1"])
    assert p.indexer.safe_replicate(diff)
    assert p.client.docs["semindex-data-v1"] == first
    assert first["13"]["subject"] == BERLIN
    # The object gets a minimal document of its own
    assert first["14"] == {"noop": []}


def test_text_values():
    p = make_pipeline()
    diff = make_diff(
        FieldChangeOp(subject_id=13, property_id=22, text="  Big   CITY "),
        FieldChangeOp(
            subject_id=13, property_id=21, text="See [[:Category:A|A]] too"
        ),
    )
    document = p.indexer.map_change_diff(diff, "idx")[1]
    assert document["P:22"] == {"txtField": ["big city"]}
    assert document["P:21"] == {"txtField": ["See [[A]] too"]}


def test_text_values_raw():
    config = make_config(
        indexer={"raw_text": True, "keyword_normalize": False}
    )
    p = make_pipeline(config)
    diff = make_diff(
        FieldChangeOp(subject_id=13, property_id=22, text="Big CITY"),
        FieldChangeOp(subject_id=13, property_id=21, text="[[:A|A]]"),
    )
    document = p.indexer.map_change_diff(diff, "idx")[1]
    assert document["P:22"] == {"txtField": ["Big CITY"]}
    assert document["P:21"] == {"txtField": ["[[:A|A]]"]}


def test_embedded_object_deletes():
    p = make_pipeline()
    diff = make_diff(
        FieldChangeOp(subject_id=13),
        deletes=[
            TableChangeOp(
                table_name="sobj",
                property_key="_SOBJ",
                field_change_ops=[
                    FieldChangeOp(
                        op="delete",
                        subject_id=13,
                        property_id=30,
                        entity_id=101,
                    )
                ],
            ),
            TableChangeOp(
                table_name="data",
                field_change_ops=[
                    FieldChangeOp(
                        op="delete",
                        subject_id=13,
                        property_id=25,
                        entity_id=14,
                    )
                ],
            ),
        ],
    )
    operations = p.indexer.map_change_diff(diff, "idx")
    assert operations[0] == {"delete": {"_index": "idx", "_id": "101"}}
    deletes = [op for op in operations if "delete" in op]
    assert len(deletes) == 1
    assert operations[-1] == {"subject": BERLIN}


def test_unknown_subject_is_skipped():
    p = make_pipeline()
    diff = make_diff(FieldChangeOp(subject_id=999, property_id=26, number=1))
    assert p.indexer.map_change_diff(diff, "idx") == []


def test_unsafe_replicate_is_deferred():
    p = make_pipeline()
    p.client.available = False
    diff = located_in_germany()
    assert not p.indexer.safe_replicate(diff)
    assert p.client.bulks == []
    params = pulled(p)
    assert len(params) == 1
    assert params[0].replicate == berlin.hash
    assert params[0].origin == "test"
    assert ChangeDiff.fetch(p.cache, berlin) == diff


def test_connection_lost_during_replicate():
    p = make_pipeline()
    p.client.write_error = connection_lost()
    diff = located_in_germany()
    assert not p.indexer.safe_replicate(diff)
    assert [params.replicate for params in pulled(p)] == [berlin.hash]
    assert ChangeDiff.fetch(p.cache, berlin) == diff


def test_connection_lost_during_create_and_delete():
    p = make_pipeline()
    p.client.write_error = connection_lost()
    assert not p.indexer.create(berlin)
    assert not p.indexer.delete([14], is_concept=True)
    created, deleted = pulled(p)
    assert created.create == berlin.hash
    assert deleted.delete == [14]
    assert deleted.is_concept
    assert "semindex-data" not in p.client.docs


def test_plain_writes_raise():
    p = make_pipeline()
    p.client.write_error = connection_lost()
    with pytest.raises(BackendUnavailableError):
        p.indexer.index_entity(berlin)
    with pytest.raises(BackendUnavailableError):
        p.indexer.delete_documents([13], is_concept=False)
    with pytest.raises(BackendUnavailableError):
        p.indexer.replicate(located_in_germany())
    assert pulled(p) == []

def test_lock_writes_new_generation():
    p = make_pipeline()
    p.indexer.setup()
    p.connection.set_lock("data", "v2")
    assert not p.indexer.safe_replicate(located_in_germany())
    assert len(pulled(p)) == 1

    # A rebuild writes the new generation directly
    p.indexer.replicate(located_in_germany())
    assert "13" in p.client.docs["semindex-data-v2"]
    assert p.client.docs["semindex-data-v1"] == {}


def test_create():
    p = make_pipeline()
    assert p.indexer.create(berlin)
    assert p.client.docs["semindex-data"]["13"] == {"subject": BERLIN}

    p.client.available = False
    assert not p.indexer.create(berlin)
    assert pulled(p)[0].create == berlin.hash


def test_delete():
    p = make_pipeline()
    p.client.docs["semindex-data"] = {"13": {}, "15": {}}
    assert p.indexer.delete([13])
    assert p.client.docs["semindex-data"] == {"15": {}}


def test_delete_concept():
    p = make_pipeline()
    assert p.indexer.delete([15], is_concept=True)
    assert p.client.bulks[0] == [
        {"delete": {"_index": "semindex-data", "_id": "15"}},
        {
            "delete": {
                "_index": "semindex-lookup",
                "_id": concept_lookup_id(15),
            }
        },
    ]


def test_delete_deferred():
    p = make_pipeline()
    p.client.available = False
    assert not p.indexer.delete([13, 14])
    params = pulled(p)[0]
    assert params.delete == [13, 14]
    assert not params.is_concept


def test_clean_sortkey():
    assert clean_sortkey("a\u200bb\x07c") == "abc"
    assert clean_sortkey("Grüße") == "Grüße"


def test_remove_links():
    assert Indexer.remove_links("[[:Foo|Bar]] and [[Baz]]") == (
        "[[Bar]] and [[Baz]]"
    )


def test_subject_document_of_subobject():
    p = make_pipeline()
    entity = EntityRef(title="Berlin", subobject="_abc", sortkey="b\x00")
    assert p.indexer.create(entity)
    id = str(p.entity_store.get_id(entity))
    assert p.client.docs["semindex-data"][id]["subject"] == {
        "title": "Berlin",
        "subobject": "_abc",
        "namespace": 0,
        "interwiki": "",
        "sortkey": "b",
    }
