# type: ignore
from ._data import make_pipeline


def test_default_sort():
    p = make_pipeline()
    spec = p.sort_builder.make_sort_spec({"": "ASC"})
    assert spec.sort == {
        "subject.sortkey.sort": {"order": "asc"},
        "subject.title.sort": {"order": "asc"},
    }
    assert spec.sort_fields == []
    assert not spec.is_random
    assert spec.is_constant_score
    assert spec.to_request() == [
        {"subject.sortkey.sort": {"order": "asc"}},
        {"subject.title.sort": {"order": "asc"}},
    ]


def test_property_sort():
    p = make_pipeline()
    spec = p.sort_builder.make_sort_spec({"Age": "desc", "Name": "asc"})
    assert spec.sort == {
        "P:20.numField": {"order": "desc"},
        "P:21.txtField.sort": {"order": "asc"},
    }
    assert spec.sort_fields == ["P:20.numField", "P:21.txtField"]


def test_chain_enforces_last_hop():
    p = make_pipeline()
    spec = p.sort_builder.make_sort_spec({"Located in.Population": "asc"})
    assert spec.sort == {
        "P:25.wpgField.sort": {"order": "asc"},
        "P:26.numField": {"order": "asc"},
    }
    assert spec.sort_fields == ["P:26.numField"]


def test_random():
    p = make_pipeline()
    sort, sort_fields, is_random, is_constant_score = (
        p.sort_builder.make_sort_spec({"#": "RAND"})
    )
    assert is_random
    assert is_constant_score
    assert sort_fields == []
    assert "subject.title.sort" in sort


def test_relevance_order_wins():
    p = make_pipeline()
    spec = p.sort_builder.make_sort_spec({"Age": "asc"}, "desc")
    assert spec.sort == {"_score": {"order": "desc"}}
    assert spec.sort_fields == []
    assert not spec.is_constant_score


def test_score_field():
    p = make_pipeline()
    spec = p.sort_builder.make_sort_spec({"ES.score": "desc"})
    assert spec.sort == {"_score": {"order": "desc"}}
    assert spec.sort_fields == []
    assert not spec.is_constant_score
