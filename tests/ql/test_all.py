# type: ignore
import pytest
from pydantic import ValidationError

from semindex.core.exceptions import BadRequestError
from semindex.ql import (
    ClassDescription,
    Comparator,
    ConceptDescription,
    Conjunction,
    DescriptionParser,
    Disjunction,
    EntityRef,
    GeoArea,
    GeoCoord,
    Namespace,
    NamespaceDescription,
    Number,
    Property,
    SomeProperty,
    Text,
    ThingDescription,
    Time,
    ValueDescription,
    ValueType,
)

foo = EntityRef(title="Foo", namespace=Namespace.CATEGORY)
bar = EntityRef(title="Bar", namespace=Namespace.CATEGORY)
age = Property(key="Age", value_type=ValueType.NUMBER)
located_in = Property(key="Located_in")


def test_entity_hash():
    entity = EntityRef(title="Main_Page", subobject="sub")
    assert entity.hash == "Main_Page#0##sub"
    assert EntityRef.from_hash(entity.hash) == entity
    assert EntityRef.from_hash("Foo#14") == EntityRef(
        title="Foo", namespace=Namespace.CATEGORY
    )
    with pytest.raises(ValueError):
        EntityRef.from_hash("Foo")


def test_entity_text():
    entity = EntityRef(title="Main_Page")
    assert entity.text == "Main Page"
    assert entity.get_sortkey() == "Main Page"
    assert str(foo) == "Category:Foo"
    assert EntityRef(title="A", sortkey="zz").get_sortkey() == "zz"


def test_time_julian_day():
    assert Time(year=2000, month=1, day=1, hour=12).to_julian_day() == (
        2451545.0
    )
    # before the Unix epoch and before the Gregorian reform
    reform = Time(year=1582, month=10, day=4, calendar="julian")
    assert reform.to_julian_day() == pytest.approx(2299159.5)
    day = Time.from_julian_day(2451545.0)
    assert (day.year, day.month, day.day, day.hour) == (2000, 1, 1, 12)


def test_geo_area_around():
    area = GeoArea.around(GeoCoord(lat=52.0, lon=13.0), 10)
    assert area.south < 52.0 < area.north
    assert area.west < 13.0 < area.east


def test_comparator():
    assert Comparator.PRIM_LIKE.normalize() is Comparator.LIKE
    assert Comparator.PRIM_NLIKE.normalize() is Comparator.NLIKE
    assert Comparator.GREATER.is_range()
    assert not Comparator.LIKE.is_range()
    assert Comparator.EQ.prefix == ""


def test_query_string():
    description = Conjunction(
        descriptions=(
            ClassDescription(categories=(foo, bar)),
            SomeProperty(
                property=age,
                description=ValueDescription(
                    data_item=Number(value=32),
                    comparator=Comparator.GREATER,
                    property=age,
                ),
            ),
            NamespaceDescription(namespace=Namespace.MAIN),
        )
    )
    assert description.query_string == (
        "[[Category:Foo||Bar]] [[Age::>>32]] [[+]]"
    )
    chain = SomeProperty(
        property=located_in,
        description=SomeProperty(
            property=Property(key="Population", value_type=ValueType.NUMBER),
            description=ThingDescription(),
        ),
    )
    assert chain.query_string == "[[Located in.Population::+]]"
    assert (
        Disjunction(
            descriptions=(
                ClassDescription(categories=(foo,)),
                ClassDescription(categories=(bar,)),
            )
        ).query_string
        == "<q>[[Category:Foo]] OR [[Category:Bar]]</q>"
    )


def test_size_and_depth():
    chain = SomeProperty(
        property=located_in,
        description=SomeProperty(
            property=age,
            description=ThingDescription(),
        ),
    )
    description = Conjunction(
        descriptions=(chain, ClassDescription(categories=(foo,)))
    )
    assert description.get_size() == 4
    assert description.get_depth() == 2


def test_fingerprint():
    a = ClassDescription(categories=(foo,))
    b = ClassDescription(categories=(foo,))
    c = ClassDescription(categories=(foo,), negated=True)
    assert a.fingerprint == b.fingerprint
    assert a.fingerprint != c.fingerprint


def test_parse():
    description = Conjunction(
        descriptions=(
            ConceptDescription(
                concept=EntityRef(title="C", namespace=Namespace.CONCEPT)
            ),
            SomeProperty(
                property=located_in,
                description=ValueDescription(
                    data_item=EntityRef(title="Berlin"),
                    property=located_in,
                ),
            ),
            SomeProperty(
                property=Property(key="Name", value_type=ValueType.TEXT),
                description=ValueDescription(
                    data_item=Text(value="abc*"),
                    comparator=Comparator.LIKE,
                ),
            ),
        )
    )
    value = DescriptionParser.dumps(description)
    parsed = DescriptionParser.parse(value)
    assert parsed == description
    assert isinstance(parsed.descriptions[1].description.data_item, EntityRef)

    with pytest.raises(BadRequestError):
        DescriptionParser.parse('{"type": "unknown"}')
    with pytest.raises(BadRequestError):
        DescriptionParser.parse("not json")


def test_nodes_are_frozen():
    description = ClassDescription(categories=(foo,))
    with pytest.raises(ValidationError):
        description.negated = True
