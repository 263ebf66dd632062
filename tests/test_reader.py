import logging

import pytest
from heurist2rocrate.heurist import (
    DateFieldValue,
    FileFieldValue,
    GeoFieldValue,
    RecordPointerFieldValue,
    TermFieldValue,
)
from heurist2rocrate.reader import parse_partial_date, read_heurist_export
from heurist2rocrate.utils import ConversionError


@pytest.fixture
def data(export_dir):
    return read_heurist_export(export_dir, db_name="demo", name="Demo")


def test_read_structure(data):
    assert data.db_name == "demo"
    assert data.name == "Demo"
    assert data.counts() == {
        "terms": 6,
        "record types": 3,
        "base fields": 7,
        # 9 declared fields + 1 non-standard field
        "fields": 10,
        "records": 5,
    }
    person = data.find_record_type("10")
    assert person.description == "A real person."
    assert data.find_record_type("15").description is None
    born_in = data.find_base_field("20")
    assert born_in.type == "resource"
    assert born_in.target_record_type_ids == ["12"]
    assert data.find_field("12:1").description == "Name of the place."
    assert [t.label for t in data.vocabularies] == ["Gender", "Place types"]
    assert data.find_term("602").code == "CAP"


def test_default_db_name(export_dir):
    data = read_heurist_export(export_dir)
    assert data.db_name == "export"
    assert data.name is None


def test_read_records(data):
    ada = data.find_record("1")
    assert ada.title == "Ada Lovelace"
    assert ada.record_type_id == "10"
    assert ada.get_field_values("10:1")[0].value == "Ada Lovelace"

    (birth,) = ada.get_field_values("10:9")
    assert isinstance(birth, DateFieldValue)
    assert birth.iso_date() == "1815-12-10"

    (gender,) = ada.get_field_values("10:18")
    assert isinstance(gender, TermFieldValue)
    assert gender.term_id == "501"

    (born_in,) = ada.get_field_values("10:20")
    assert isinstance(born_in, RecordPointerFieldValue)
    assert born_in.target_id == "2"

    (photo,) = ada.get_field_values("10:38")
    assert isinstance(photo, FileFieldValue)
    assert photo.local_name == "ulf_0a1b2c_ada.png"
    assert photo.file_size == 2048
    assert photo.mime_type == "image/png"
    assert photo.date == "2023-05-01T10:00:00"


def test_non_standard_field(data):
    field = data.find_field("10:3")
    assert field.name == "Short summary"
    assert data.find_record("1").get_field_values("10:3")[0].value == "Mathematician."


def test_read_geo_values(data):
    (point,) = data.find_record("2").get_field_values("12:28")
    assert isinstance(point, GeoFieldValue)
    assert point.geo_type == "point"
    assert point.point_coordinates() == (51.507222, -0.1275)
    (line,) = data.find_record("3").get_field_values("12:28")
    assert line.shape() == ("linestring", "0.1 51.5, 0.2 51.6")


def test_read_date_range_and_remote_file(data):
    babbage = data.find_record("4")
    (birth,) = babbage.get_field_values("10:9")
    assert birth.is_range
    assert birth.iso_date() == "1791/1871"
    (photo,) = babbage.get_field_values("10:38")
    assert photo.is_remote
    assert photo.url == "https://example.org/babbage.jpg"


def test_dangling_references_are_dropped(export_dir, caplog):
    with caplog.at_level(logging.WARNING):
        data = read_heurist_export(export_dir)
    assert "Can't find the referenced term (999)." in caplog.text
    assert "Can't find the referenced record (99)." in caplog.text
    babbage = data.find_record("4")
    assert babbage.get_field_values("10:18") == []
    assert babbage.get_field_values("10:20") == []


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('{"timestamp": {"in": "1850-05"}}', "1850-05"),
        ('{"start": {"earliest": "1800"}, "end": {"latest": "1900-01-31"}}', "1800/1900-01-31"),
        ('{"start": {"earliest": "1800"}}', "1800/.."),
        ('{"start": {"earliest": 1800}, "end": {"latest": 1900}}', "1800/1900"),
        ('{"timestamp": {"in": 1850}}', "1850"),
        ('{"start": 1800, "end": {"latest": "1900"}}', "../1900"),
        ("{broken", "{broken"),
    ],
)
def test_json_dates(tmp_path, export_dir, raw, expected):
    structure = (export_dir / "Database_Structure.xml").read_text(encoding="utf-8")
    (tmp_path / "Database_Structure.xml").write_text(structure, encoding="utf-8")
    records = f"""<?xml version="1.0" encoding="UTF-8"?>
<hml><records>
  <record><id>1</id><type id="10">Person</type>
    <detail id="9"><raw>{raw}</raw></detail>
  </record>
</records></hml>"""
    (tmp_path / "Record_Structure.xml").write_text(records, encoding="utf-8")

    data = read_heurist_export(tmp_path)

    (date,) = data.find_record("1").get_field_values("10:9")
    assert date.iso_date() == expected


def test_parse_partial_date():
    date = parse_partial_date("-0500-03")
    assert (date.year, date.month, date.day) == ("-0500", "03", None)
    assert parse_partial_date("") is None
    assert parse_partial_date("unknown").iso_date() == "unknown"


def test_missing_export_dir(tmp_path):
    with pytest.raises(ConversionError, match="not found"):
        read_heurist_export(tmp_path / "missing")


def test_missing_file(tmp_path):
    with pytest.raises(ConversionError, match="Cannot read XML file"):
        read_heurist_export(tmp_path)


def test_invalid_xml(tmp_path):
    (tmp_path / "Database_Structure.xml").write_text("<hml_structure>", encoding="utf-8")
    with pytest.raises(ConversionError, match="Invalid XML"):
        read_heurist_export(tmp_path)


def test_settings_file_names(tmp_path, export_dir, temp_config):
    (tmp_path / "structure.xml").write_bytes(
        (export_dir / "Database_Structure.xml").read_bytes()
    )
    (tmp_path / "records.xml").write_bytes(
        (export_dir / "Record_Structure.xml").read_bytes()
    )
    temp_config.load_config(
        config=temp_config.Settings(
            structure_file="structure.xml", records_file="records.xml"
        )
    )
    data = read_heurist_export(tmp_path)
    assert len(data.records) == 5
