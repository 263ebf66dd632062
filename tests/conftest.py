# Common pytest fixtures for all test modules
from pathlib import Path

import pytest

from heurist2rocrate import config
from heurist2rocrate.heurist import (
    TYPE_DATE,
    TYPE_RECORD_POINTER,
    TYPE_TEXT,
    BaseField,
    Field,
    HeuristData,
    RecordType,
    Term,
)

EXPORT_DIR = "export"
MAPPING = "mapping.json"
SETTINGS = "settings.toml"


@pytest.fixture(scope="session")
def datadir():
    """DATADIR as a LocalPath"""
    return Path(__file__).resolve().parent / "data"


@pytest.fixture
def export_dir(datadir):
    return datadir / EXPORT_DIR


@pytest.fixture
def temp_config():
    """
    Provides a temporary config that can be safely changed in test functions.

    After the test the config will be reset to default.
    """
    yield config

    # Reset the globally changed config to default.
    config.load_config()


@pytest.fixture
def vocabulary_data():
    """A vocabulary (1) with two terms (2, 3) and a nested term (4)."""
    return HeuristData(
        db_name="test",
        terms=[
            Term(id="1", label="Colours", description="Basic colours", parent_id="0"),
            Term(id="2", label="Red", code="R", parent_id="1"),
            Term(id="3", label="Blue", parent_id="1"),
            Term(id="4", label="Dark blue", parent_id="3"),
        ],
    )


@pytest.fixture
def schema_data():
    """Two record types sharing the base field "Name" and a record pointer."""
    return HeuristData(
        db_name="test",
        record_types=[
            RecordType(id="10", name="Person", description="A person"),
            RecordType(id="11", name="Organisation"),
        ],
        base_fields=[
            BaseField(id="1", name="Name", type=TYPE_TEXT),
            BaseField(id="2", name="Founded", type=TYPE_DATE),
            BaseField(
                id="3",
                name="Member of",
                type=TYPE_RECORD_POINTER,
                target_record_type_ids="11",
            ),
        ],
        fields=[
            Field(record_type_id="10", base_field_id="1", name="Name"),
            Field(record_type_id="10", base_field_id="3", name="Member of"),
            Field(record_type_id="11", base_field_id="1", name="Name"),
            Field(record_type_id="11", base_field_id="2", name="Founded"),
        ],
    )
