import pytest
from heurist2rocrate.heurist import Field, RecordType, Term
from heurist2rocrate.utils import (
    ConfigurationError,
    ConversionError,
    EntityKind,
    create_class_name,
    create_property_name,
    entity_identifier,
    entity_identifier_from_id,
    unique_everseen,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Person", "Person"),
        ("place of birth", "PlaceOfBirth"),
        ("Place (historical) / site", "PlaceSite"),
        ("DNA sample", "DNASample"),
        ("demo Dataset", "DemoDataset"),
        ("  ", ""),
    ],
)
def test_create_class_name(text, expected):
    assert create_class_name(text) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Name", "name"),
        ("Date of Birth", "dateOfBirth"),
        ("Born in (place)", "bornIn"),
        ("URL of web page", "urlOfWebPage"),
        ("e-mail", "eMail"),
        ("", ""),
    ],
)
def test_create_property_name(text, expected):
    assert create_property_name(text) == expected


def test_entity_identifier():
    assert entity_identifier(RecordType(id="10", name="Person")) == "r10"
    assert entity_identifier(Term(id="5")) == "t5"
    field = Field(record_type_id="10", base_field_id="1")
    assert entity_identifier(field) == "f10:1"


def test_entity_identifier_from_id():
    assert entity_identifier_from_id(EntityKind.BASE_FIELD, "1") == "b1"
    assert entity_identifier_from_id("record", "42") == "c42"
    assert entity_identifier_from_id(EntityKind.TERM, "5:label") == "t5:label"


def test_entity_identifier_invalid():
    with pytest.raises(ValueError, match="Invalid entity kind"):
        entity_identifier_from_id("unknown", "1")
    with pytest.raises(TypeError, match="Invalid entity type str"):
        entity_identifier("r10")


def test_error_hierarchy():
    assert issubclass(ConfigurationError, ConversionError)


def test_unique_everseen():
    assert unique_everseen(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]
