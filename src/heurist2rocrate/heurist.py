"""Typed model of a Heurist database export.

The source entities reference each other only by id. `HeuristData` owns all of
them and answers the lookups needed by the converter.
"""

import logging
import re
from datetime import datetime
from typing import ClassVar

import networkx as nx
from pydantic import BaseModel, field_validator

from heurist2rocrate.utils import EntityKind

logger = logging.getLogger(__name__)

# Base field types (dty_Type) as used by Heurist.
TYPE_MEMO = "blocktext"
TYPE_DATE = "date"
TYPE_TERM = "enum"
TYPE_FILE = "file"
TYPE_DECIMAL = "float"
TYPE_TEXT = "freetext"
TYPE_GEO = "geo"
TYPE_INTEGER = "integer"
TYPE_RELATION_TYPE = "relationtype"
TYPE_RELATIONSHIP = "relmarker"
TYPE_RECORD_POINTER = "resource"
TYPE_SEPARATOR = "separator"

# Term attributes that can be mapped by the configuration.
ATTR_LABEL = "label"
ATTR_DESCRIPTION = "description"
ATTR_CODE = "code"

REMOTE_FILE_NAME = "_remote"
FILE_SIZE_FACTORS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}

GEO_TYPE_POINT = "point"
POINT_PATTERN = re.compile(
    r"^\s*point\s*\(\s*([\d\-\.]+)\s+([\d\-\.]+)\s*\)", re.IGNORECASE
)
SHAPE_PATTERN = re.compile(r"([a-zA-Z]+)\s*\((.+)\)", re.DOTALL)


def create_field_id(record_type_id: str, base_field_id: str) -> str:
    return f"{record_type_id}:{base_field_id}"


def create_term_attribute_id(term_id: str, attribute_name: str) -> str:
    return f"{term_id}:{attribute_name}"


# === Schema entities ===


class RecordType(BaseModel):
    KIND: ClassVar[EntityKind] = EntityKind.RECORD_TYPE

    id: str
    name: str = ""
    description: str | None = None


class BaseField(BaseModel):
    KIND: ClassVar[EntityKind] = EntityKind.BASE_FIELD

    id: str
    name: str = ""
    description: str | None = None
    type: str = TYPE_TEXT
    target_record_type_ids: list[str] = []

    @field_validator("target_record_type_ids", mode="before")
    @classmethod
    def split_comma_separated(cls, value):
        # dty_PtrTargetRectypeIDs is a comma separated string in the export.
        if value is None:
            return []
        if isinstance(value, str):
            return [x.strip() for x in value.split(",") if x.strip()]
        return value


class Field(BaseModel):
    """The binding of a base field to one record type."""

    KIND: ClassVar[EntityKind] = EntityKind.FIELD

    record_type_id: str
    base_field_id: str
    name: str = ""
    description: str | None = None

    @property
    def id(self) -> str:
        return create_field_id(self.record_type_id, self.base_field_id)


class Term(BaseModel):
    KIND: ClassVar[EntityKind] = EntityKind.TERM

    id: str
    label: str = ""
    description: str | None = None
    code: str | None = None
    parent_id: str | None = None

    @property
    def is_vocabulary(self) -> bool:
        return self.parent_id in (None, "", "0")


# === Field values ===


def _pad(component: str, width: int) -> str:
    return component.zfill(width) if component.isdigit() else component


def _render_date(year: str | None, month: str | None, day: str | None) -> str:
    if not year:
        return ""
    date = _pad(year, 4)
    if month:
        date += "-" + _pad(month, 2)
        if day:
            date += "-" + _pad(day, 2)
    return date


class GenericFieldValue(BaseModel):
    field_id: str
    value: str = ""


class PartialDate(BaseModel):
    """A single date with optional month and day, e.g. one bound of a range."""

    raw: str = ""
    year: str | None = None
    month: str | None = None
    day: str | None = None

    def iso_date(self) -> str:
        return _render_date(self.year, self.month, self.day) or self.raw


class DateFieldValue(GenericFieldValue):
    year: str | None = None
    month: str | None = None
    day: str | None = None
    is_range: bool = False
    earliest: PartialDate | None = None  # terminus post quem (TPQ)
    latest: PartialDate | None = None  # terminus ante quem (TAQ)
    probable_begin: PartialDate | None = None  # PDB
    probable_end: PartialDate | None = None  # PDE

    def iso_date(self) -> str:
        """Render the date as ISO 8601 string.

        Ranges are rendered as interval "start/end". If only one bound is
        known the other side is left open with "..", e.g. "1800/..".
        Falls back to the raw value if the date has no components at all.
        """
        if self.is_range:
            start = self.earliest or self.probable_begin
            end = self.latest or self.probable_end
            start_str = start.iso_date() if start is not None else ""
            end_str = end.iso_date() if end is not None else ""
            if start_str or end_str:
                return f"{start_str or '..'}/{end_str or '..'}"
        else:
            date = _render_date(self.year, self.month, self.day)
            if date:
                return date
        return self.value


class GeoFieldValue(GenericFieldValue):
    """A geo value; `value` holds the WKT string."""

    geo_type: str | None = None

    @property
    def is_point(self) -> bool:
        """Heurist's geo type decides; without one the WKT tag does."""
        if self.geo_type:
            return self.geo_type.strip().lower() == GEO_TYPE_POINT
        shape = self.shape()
        return shape is not None and shape[0] == GEO_TYPE_POINT

    def point_coordinates(self) -> tuple[float, float] | None:
        """Return (latitude, longitude) of a WKT point or None."""
        match = POINT_PATTERN.match(self.value)
        if match is None:
            return None
        try:
            longitude, latitude = float(match[1]), float(match[2])
        except ValueError:
            return None
        return latitude, longitude

    def shape(self) -> tuple[str, str] | None:
        """Return the lower-cased WKT tag and the raw coordinate string."""
        match = SHAPE_PATTERN.search(self.value)
        if match is None:
            return None
        return match[1].lower(), match[2]


class FileFieldValue(GenericFieldValue):
    file_id: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None
    date: str | None = None
    url: str | None = None

    @field_validator("date")
    @classmethod
    def date_to_iso(cls, value):
        if not value:
            return None
        try:
            return datetime.fromisoformat(value.strip()).isoformat()
        except ValueError:
            logger.debug('Keeping unparsable file date "%s" as is.', value)
            return value

    @staticmethod
    def normalise_file_size(size: str | int | float, unit: str | None = "B") -> int:
        """Convert a file size with unit B, KB, MB or GB (base 1024) to bytes."""
        factor = FILE_SIZE_FACTORS.get((unit or "B").strip().upper())
        if factor is None:
            msg = f'Unsupported file size unit "{unit}".'
            raise ValueError(msg)
        return int(float(size) * factor)

    @property
    def is_remote(self) -> bool:
        return self.file_name == REMOTE_FILE_NAME

    @property
    def local_name(self) -> str | None:
        """Name of the uploaded file as stored by Heurist."""
        if self.file_id and self.file_name and not self.is_remote:
            return f"ulf_{self.file_id}_{self.file_name}"
        return None


class TermFieldValue(GenericFieldValue):
    term_id: str


class RecordPointerFieldValue(GenericFieldValue):
    target_id: str


class Record(BaseModel):
    KIND: ClassVar[EntityKind] = EntityKind.RECORD

    id: str
    title: str | None = None
    record_type_id: str
    values: dict[str, list[GenericFieldValue]] = {}

    def add_field_value(self, field_value: GenericFieldValue) -> None:
        self.values.setdefault(field_value.field_id, []).append(field_value)

    def get_field_values(self, field_id: str) -> list[GenericFieldValue]:
        return self.values.get(field_id, [])


# === The data container ===


class HeuristData:
    """All entities of one Heurist export, keyed by their id."""

    def __init__(
        self,
        db_name: str = "",
        name: str | None = None,
        description: str | None = None,
        terms=(),
        record_types=(),
        base_fields=(),
        fields=(),
        records=(),
    ):
        self.db_name = db_name
        self.name = name
        self.description = description
        self.terms: dict[str, Term] = {t.id: t for t in terms}
        self.record_types: dict[str, RecordType] = {rt.id: rt for rt in record_types}
        self.base_fields: dict[str, BaseField] = {bf.id: bf for bf in base_fields}
        self.fields: dict[str, Field] = {f.id: f for f in fields}
        self.records: dict[str, Record] = {r.id: r for r in records}
        self._term_graph = None

    # --- adding entities ---

    def add_term(self, term: Term) -> None:
        self.terms[term.id] = term
        self._term_graph = None

    def add_record_type(self, record_type: RecordType) -> None:
        self.record_types[record_type.id] = record_type

    def add_base_field(self, base_field: BaseField) -> None:
        self.base_fields[base_field.id] = base_field

    def add_field(self, field: Field) -> None:
        self.fields[field.id] = field

    def add_record(self, record: Record) -> None:
        self.records[record.id] = record

    def create_non_standard_field(
        self, record_type_id: str, base_field_id: str
    ) -> Field | None:
        """Create a field for a base field that is not declared on the record type.

        Heurist records may carry ad-hoc values on base fields without a field
        in the record structure. Such a field is derived from the base field.
        """
        base_field = self.find_base_field(base_field_id)
        if base_field is None or self.find_record_type(record_type_id) is None:
            return None
        field = Field(
            record_type_id=record_type_id,
            base_field_id=base_field_id,
            name=base_field.name,
            description=base_field.description,
        )
        self.add_field(field)
        logger.debug("Created non-standard field %s.", field.id)
        return field

    # --- lookups ---

    def find_term(self, term_id: str) -> Term | None:
        return self.terms.get(term_id)

    def find_record_type(self, record_type_id: str) -> RecordType | None:
        return self.record_types.get(record_type_id)

    def find_base_field(self, base_field_id: str) -> BaseField | None:
        return self.base_fields.get(base_field_id)

    def find_field(self, field_id: str) -> Field | None:
        return self.fields.get(field_id)

    def find_field_by_record_type_and_base_field(
        self, record_type_id: str, base_field_id: str
    ) -> Field | None:
        return self.fields.get(create_field_id(record_type_id, base_field_id))

    def find_record(self, record_id: str) -> Record | None:
        return self.records.get(record_id)

    def get_base_field_used_record_types(self, base_field: BaseField) -> list[RecordType]:
        """All record types with a field bound to the base field."""
        record_types = []
        for field in self.fields.values():
            if field.base_field_id != base_field.id:
                continue
            record_type = self.find_record_type(field.record_type_id)
            if record_type is not None and record_type not in record_types:
                record_types.append(record_type)
        return record_types

    def get_target_record_types(self, base_field: BaseField) -> list[RecordType]:
        """Allowed target record types of a record pointer base field."""
        return [
            self.record_types[rt_id]
            for rt_id in base_field.target_record_type_ids
            if rt_id in self.record_types
        ]

    # --- term hierarchy ---

    @property
    def term_graph(self) -> nx.DiGraph:
        """Directed graph of the term hierarchy with edges parent -> child."""
        if self._term_graph is None:
            graph = nx.DiGraph()
            graph.add_nodes_from(self.terms)
            for term in self.terms.values():
                if term.is_vocabulary:
                    continue
                if term.parent_id in self.terms:
                    graph.add_edge(term.parent_id, term.id)
                else:
                    logger.warning(
                        "Parent term (%s) of term (%s) not found.",
                        term.parent_id,
                        term.id,
                    )
            self._term_graph = graph
        return self._term_graph

    @property
    def vocabularies(self) -> list[Term]:
        """Terms without parent."""
        return [term for term in self.terms.values() if term.is_vocabulary]

    def get_child_terms(self, parent: Term) -> list[Term]:
        return [self.terms[t_id] for t_id in self.term_graph.successors(parent.id)]

    def get_descendant_terms(self, parent: Term) -> list[Term]:
        """All terms below parent in depth-first pre-order."""
        return [
            self.terms[t_id]
            for t_id in nx.dfs_preorder_nodes(self.term_graph, parent.id)
            if t_id != parent.id
        ]

    def counts(self) -> dict[str, int]:
        return {
            "terms": len(self.terms),
            "record types": len(self.record_types),
            "base fields": len(self.base_fields),
            "fields": len(self.fields),
            "records": len(self.records),
        }
