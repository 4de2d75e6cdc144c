# type: ignore
from common.fake_elasticsearch import api_error

from semindex.elastic._terms_lookup import concept_lookup_id, structural_hash

from ._data import concept, hits, make_config, make_pipeline

CLAUSE = {"term": {"P:1.wpgID": 10}}


def test_structural_hash_ignores_key_order():
    a = {"bool": {"must": [CLAUSE], "filter": []}}
    b = {"bool": {"filter": [], "must": [CLAUSE]}}
    assert structural_hash(a) == structural_hash(b)
    assert structural_hash(a) != structural_hash({"bool": {"must": []}})


def test_below_threshold_is_inline():
    p = make_pipeline()
    p.client.search_handler = lambda index, request: hits(1, 2)
    info = []
    result = p.terms_lookup.lookup(
        "[[Category:Foo]]", "_id", [CLAUSE], query_info=info
    )
    assert result == {"constant_score": {"filter": {"terms": {"_id": [1, 2]}}}}
    assert info[0]["predefined_lookup_query"] == "[[Category:Foo]]"
    assert info[0]["count"] == 2
    assert info[0]["is_from_cache"] is False
    assert "semindex-lookup" not in p.client.docs

    _, request = p.client.searches[0]
    assert request["query"] == {
        "constant_score": {"filter": {"bool": {"must": [CLAUSE]}}}
    }
    assert request["size"] == 100


def test_at_threshold_is_stored():
    config = make_config(
        subquery={"terms_lookup_result_size_index_write_threshold": 2}
    )
    p = make_pipeline(config)
    p.client.search_handler = lambda index, request: hits(1, 2)
    result = p.terms_lookup.lookup("[[Category:Foo]]", "_id", [CLAUSE])
    reference = result["constant_score"]["filter"]["terms"]["_id"]
    assert reference["index"] == "semindex-lookup"
    assert reference["path"] == "id"
    assert reference["id"].startswith("pre:")
    assert p.client.docs["semindex-lookup"][reference["id"]] == {"id": [1, 2]}
    assert p.client.refreshed == ["semindex-lookup"]


def test_cache_hit():
    p = make_pipeline()
    p.client.search_handler = lambda index, request: hits(3)
    info = []
    first = p.terms_lookup.lookup("[[Category:Foo]]", "_id", [CLAUSE])
    second = p.terms_lookup.lookup(
        "[[Category:Foo]]", "_id", [CLAUSE], query_info=info
    )
    assert first == second
    assert len(p.client.searches) == 1
    assert info[0]["is_from_cache"]["id"].startswith("pre:")
    assert info[0]["count"] == 1


def test_cached_reference():
    config = make_config(
        subquery={"terms_lookup_result_size_index_write_threshold": 1}
    )
    p = make_pipeline(config)
    p.client.search_handler = lambda index, request: hits(3)
    first = p.terms_lookup.lookup("[[Category:Foo]]", "_id", [CLAUSE])
    second = p.terms_lookup.lookup("[[Category:Foo]]", "_id", [CLAUSE])
    assert first == second
    assert isinstance(second["constant_score"]["filter"]["terms"]["_id"], dict)
    assert len(p.client.searches) == 1


def test_errors_are_not_cached():
    p = make_pipeline()
    p.client.search_error = api_error(400, "parsing_exception")
    info = []
    result = p.terms_lookup.lookup(
        "[[Category:Foo]]", "_id", [CLAUSE], query_info=info
    )
    assert result == {"constant_score": {"filter": {"terms": {"_id": []}}}}
    assert info[0]["errors"]

    p.client.search_error = None
    p.client.search_handler = lambda index, request: hits(5)
    result = p.terms_lookup.lookup("[[Category:Foo]]", "_id", [CLAUSE])
    assert result == {"constant_score": {"filter": {"terms": {"_id": [5]}}}}
    assert len(p.client.searches) == 2


def test_some_property_lookup_uses_chain_field():
    from semindex.ql import Number, Property, SomeProperty, ValueDescription

    p = make_pipeline()
    p.client.search_handler = lambda index, request: hits(7)
    description = SomeProperty(
        property=Property(key="Population"),
        description=ValueDescription(data_item=Number(value=1)),
    )
    info = []
    result = p.terms_lookup.lookup_some_property(
        description, "P:25.wpgID", [CLAUSE], query_info=info
    )
    assert result == {
        "constant_score": {"filter": {"terms": {"P:25.wpgID": [7]}}}
    }
    assert "lookup_query" in info[0]


def test_inverse_lookup():
    p = make_pipeline()
    p.client.search_handler = lambda index, request: [
        {"_id": "14", "_source": {"P:25": {"wpgID": [13, 12]}}},
        {"_id": "15", "_source": {"P:25": {"wpgID": 13}}},
    ]
    result = p.terms_lookup.lookup_inverse("k", "P:25.wpgID", [14, 15])
    assert result == {
        "constant_score": {"filter": {"terms": {"_id": [13, 12]}}}
    }
    _, request = p.client.searches[0]
    assert request["source"] == ["P:25.wpgID"]
    assert request["query"] == {
        "constant_score": {
            "filter": {"bool": {"must": [{"terms": {"_id": [14, 15]}}]}}
        }
    }


def test_inverse_lookup_without_ids():
    p = make_pipeline()
    for params in ([], 0, None):
        result = p.terms_lookup.lookup_inverse("k", "P:25.wpgID", params)
        assert result == {"constant_score": {"filter": {"terms": {"_id": []}}}}
    assert p.client.searches == []


def test_concept_lookup_document_id():
    from semindex.ql import ClassDescription

    config = make_config(
        subquery={
            "concept_terms_lookup_result_size_index_write_threshold": 1
        }
    )
    p = make_pipeline(config)
    p.client.search_handler = lambda index, request: hits(13)
    description = ClassDescription(categories=(concept,))
    result = p.terms_lookup.lookup_concept(concept, 15, description, [CLAUSE])
    reference = result["constant_score"]["filter"]["terms"]["_id"]
    assert reference["id"] == concept_lookup_id(15)
    assert concept_lookup_id(15) in p.client.docs["semindex-lookup"]


def test_concept_threshold_is_separate():
    from semindex.ql import ClassDescription

    config = make_config(
        subquery={"terms_lookup_result_size_index_write_threshold": 1}
    )
    p = make_pipeline(config)
    p.client.search_handler = lambda index, request: hits(13)
    description = ClassDescription(categories=(concept,))
    info = []
    result = p.terms_lookup.lookup_concept(
        concept, 15, description, [CLAUSE], query_info=info
    )
    assert result == {"constant_score": {"filter": {"terms": {"_id": [13]}}}}
    assert "semindex-lookup" not in p.client.docs
    assert info[0]["concept_lookup_query"].endswith(
        description.query_string
    )


def test_constant_score_off():
    config = make_config(subquery={"constant_score": False})
    p = make_pipeline(config)
    p.client.search_handler = lambda index, request: hits(1)
    result = p.terms_lookup.lookup("k", "_id", [CLAUSE])
    assert result == {"terms": {"_id": [1]}}
