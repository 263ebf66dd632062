import logging

import pytest
from heurist2rocrate.heurist import (
    BaseField,
    DateFieldValue,
    FileFieldValue,
    GeoFieldValue,
    HeuristData,
    PartialDate,
    Record,
    Term,
    TermFieldValue,
    create_term_attribute_id,
)


def test_base_field_target_record_types():
    base_field = BaseField(id="1", name="Author", target_record_type_ids="10, 11,")
    assert base_field.target_record_type_ids == ["10", "11"]
    assert BaseField(id="2").target_record_type_ids == []


def test_term_is_vocabulary():
    assert Term(id="1", parent_id="0").is_vocabulary
    assert Term(id="1", parent_id="").is_vocabulary
    assert Term(id="1").is_vocabulary
    assert not Term(id="2", parent_id="1").is_vocabulary


def test_create_term_attribute_id():
    assert create_term_attribute_id("500", "code") == "500:code"


def test_date_partial():
    assert DateFieldValue(field_id="1:2", value="1850", year="1850").iso_date() == "1850"
    date = DateFieldValue(field_id="1:2", year="850", month="3", day="7")
    assert date.iso_date() == "0850-03-07"
    # day without month is ignored
    assert DateFieldValue(field_id="1:2", year="1850", day="7").iso_date() == "1850"


def test_date_without_components():
    date = DateFieldValue(field_id="1:2", value="circa 1850")
    assert date.iso_date() == "circa 1850"


def test_date_range():
    date = DateFieldValue(
        field_id="1:2",
        is_range=True,
        earliest=PartialDate(year="1800"),
        latest=PartialDate(year="1900", month="12"),
    )
    assert date.iso_date() == "1800/1900-12"


def test_date_range_probable_bounds():
    date = DateFieldValue(
        field_id="1:2",
        is_range=True,
        probable_begin=PartialDate(year="1801"),
        probable_end=PartialDate(year="1899"),
    )
    assert date.iso_date() == "1801/1899"
    date.earliest = PartialDate(year="1800")
    assert date.iso_date() == "1800/1899"


def test_date_range_one_sided():
    start_only = DateFieldValue(
        field_id="1:2", is_range=True, earliest=PartialDate(year="1800")
    )
    assert start_only.iso_date() == "1800/.."
    end_only = DateFieldValue(
        field_id="1:2", is_range=True, latest=PartialDate(year="1900")
    )
    assert end_only.iso_date() == "../1900"
    no_bounds = DateFieldValue(field_id="1:2", value="?", is_range=True)
    assert no_bounds.iso_date() == "?"


def test_geo_point():
    geo = GeoFieldValue(field_id="1:2", value="POINT(10.5 20.25)")
    assert geo.point_coordinates() == (20.25, 10.5)
    assert geo.shape() == ("point", "10.5 20.25")
    geo = GeoFieldValue(field_id="1:2", value="point ( -1 2 )")
    assert geo.point_coordinates() == (2.0, -1.0)


def test_geo_is_point():
    assert GeoFieldValue(field_id="1:2", value="POINT(1 2)").is_point
    multipoint = GeoFieldValue(field_id="1:2", value="MULTIPOINT(10 20)")
    assert not multipoint.is_point
    assert multipoint.point_coordinates() is None
    assert multipoint.shape() == ("multipoint", "10 20")
    # the Heurist geo type wins over the WKT tag
    path = GeoFieldValue(field_id="1:2", value="POINT(1 2)", geo_type="path")
    assert not path.is_point
    assert GeoFieldValue(field_id="1:2", value="", geo_type="Point").is_point


def test_geo_shape():
    geo = GeoFieldValue(field_id="1:2", value="POLYGON((0 0, 1 0, 1 1, 0 0))")
    assert geo.point_coordinates() is None
    assert geo.shape() == ("polygon", "(0 0, 1 0, 1 1, 0 0)")
    assert GeoFieldValue(field_id="1:2", value="nonsense").shape() is None


@pytest.mark.parametrize(
    ("size", "unit", "expected"),
    [
        ("10", "B", 10),
        ("2", "kb", 2048),
        ("1.5", "MB", 1572864),
        (1, "GB", 1073741824),
        ("7", None, 7),
    ],
)
def test_normalise_file_size(size, unit, expected):
    assert FileFieldValue.normalise_file_size(size, unit) == expected


def test_normalise_file_size_invalid_unit():
    with pytest.raises(ValueError, match="Unsupported file size unit"):
        FileFieldValue.normalise_file_size("1", "TB")


def test_file_value():
    local = FileFieldValue(
        field_id="1:2", file_id="abc", file_name="a.png", date="2023-05-01 10:00:00"
    )
    assert not local.is_remote
    assert local.local_name == "ulf_abc_a.png"
    assert local.date == "2023-05-01T10:00:00"
    remote = FileFieldValue(
        field_id="1:2", file_id="abc", file_name="_remote", url="https://x.org/a"
    )
    assert remote.is_remote
    assert remote.local_name is None


def test_record_field_values():
    record = Record(id="1", record_type_id="10")
    assert record.get_field_values("10:1") == []
    record.add_field_value(TermFieldValue(field_id="10:1", term_id="5"))
    record.add_field_value(TermFieldValue(field_id="10:1", term_id="6"))
    assert [v.term_id for v in record.get_field_values("10:1")] == ["5", "6"]
    assert Record(id="2", record_type_id="10").values == {}


def test_term_hierarchy(vocabulary_data):
    vocabulary = vocabulary_data.find_term("1")
    assert vocabulary_data.vocabularies == [vocabulary]
    assert [t.id for t in vocabulary_data.get_child_terms(vocabulary)] == ["2", "3"]
    assert [t.id for t in vocabulary_data.get_descendant_terms(vocabulary)] == [
        "2",
        "3",
        "4",
    ]


def test_term_graph_is_rebuilt(vocabulary_data):
    vocabulary = vocabulary_data.find_term("1")
    assert len(vocabulary_data.get_descendant_terms(vocabulary)) == 3
    vocabulary_data.add_term(Term(id="5", label="Green", parent_id="1"))
    assert len(vocabulary_data.get_descendant_terms(vocabulary)) == 4


def test_term_with_missing_parent(caplog):
    data = HeuristData(terms=[Term(id="2", label="Orphan", parent_id="99")])
    with caplog.at_level(logging.WARNING):
        assert data.term_graph.number_of_edges() == 0
    assert "Parent term (99) of term (2) not found." in caplog.text


def test_lookups(schema_data):
    assert schema_data.find_record_type("10").name == "Person"
    assert schema_data.find_record_type("99") is None
    field = schema_data.find_field_by_record_type_and_base_field("11", "2")
    assert field.name == "Founded"
    assert schema_data.find_field("11:2") is field
    name = schema_data.find_base_field("1")
    assert [rt.id for rt in schema_data.get_base_field_used_record_types(name)] == [
        "10",
        "11",
    ]
    pointer = schema_data.find_base_field("3")
    assert [rt.id for rt in schema_data.get_target_record_types(pointer)] == ["11"]


def test_create_non_standard_field(schema_data):
    field = schema_data.create_non_standard_field("10", "2")
    assert field.id == "10:2"
    assert field.name == "Founded"
    assert schema_data.find_field("10:2") is field
    assert schema_data.create_non_standard_field("10", "99") is None
    assert schema_data.create_non_standard_field("99", "2") is None
