"""Read a Heurist XML export into HeuristData.

An export directory contains the database structure (record types, base
fields, fields and terms), the records and optionally a directory with the
uploaded files:

    <export>/Database_Structure.xml
    <export>/Record_Structure.xml
    <export>/file_uploads/ulf_<fileId>_<name>
"""

import json
import logging
import re
from pathlib import Path

from lxml import etree

from heurist2rocrate import config
from heurist2rocrate.heurist import (
    TYPE_DATE,
    TYPE_FILE,
    TYPE_GEO,
    TYPE_RECORD_POINTER,
    TYPE_TERM,
    BaseField,
    DateFieldValue,
    Field,
    FileFieldValue,
    GenericFieldValue,
    GeoFieldValue,
    HeuristData,
    PartialDate,
    Record,
    RecordPointerFieldValue,
    RecordType,
    Term,
    TermFieldValue,
)
from heurist2rocrate.utils import ConversionError

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\s*(-?\d+)(?:-(\d{1,2}))?(?:-(\d{1,2}))?")

# Tags of the structure elements for the model fields.
RECORD_TYPE_TAGS = {"id": "rty_ID", "name": "rty_Name", "description": "rty_Description"}
BASE_FIELD_TAGS = {
    "id": "dty_ID",
    "name": "dty_Name",
    "description": "dty_HelpText",
    "type": "dty_Type",
    "target_record_type_ids": "dty_PtrTargetRectypeIDs",
}
FIELD_TAGS = {
    "record_type_id": "rst_RecTypeID",
    "base_field_id": "rst_DetailTypeID",
    "name": "rst_DisplayName",
    "description": "rst_DisplayHelpText",
}
TERM_TAGS = {
    "id": "trm_ID",
    "label": "trm_Label",
    "description": "trm_Description",
    "code": "trm_Code",
    "parent_id": "trm_ParentTermID",
}


def parse_xml(path: Path) -> etree._ElementTree:
    try:
        return etree.parse(str(path))
    except OSError as exc:
        msg = f'Cannot read XML file "{path}": {exc}'
        raise ConversionError(msg) from exc
    except etree.XMLSyntaxError as exc:
        msg = f'Invalid XML in "{path}": {exc}'
        raise ConversionError(msg) from exc


def _text(element, path: str) -> str | None:
    """Stripped text of the first element at path; None if missing or empty."""
    found = element.find(path)
    if found is None or found.text is None:
        return None
    return found.text.strip() or None


def _model_data(element, tags: dict[str, str]) -> dict:
    return {name: _text(element, tag) for name, tag in tags.items()}


def _create_models(tree, xpath: str, model, tags: dict[str, str]) -> list:
    models = []
    for element in tree.xpath(xpath):
        data = {k: v for k, v in _model_data(element, tags).items() if v is not None}
        try:
            models.append(model(**data))
        except ValueError as exc:
            logger.warning(
                "Skipping invalid %s in line %s: %s",
                model.__name__,
                element.sourceline,
                exc,
            )
    return models


def read_structure(data: HeuristData, tree) -> None:
    """Add record types, base fields, fields and terms to data."""
    for term in _create_models(tree, "//Terms/trm", Term, TERM_TAGS):
        data.add_term(term)
    for record_type in _create_models(tree, "//RecTypes/rty", RecordType, RECORD_TYPE_TAGS):
        data.add_record_type(record_type)
    for base_field in _create_models(tree, "//DetailTypes/dty", BaseField, BASE_FIELD_TAGS):
        data.add_base_field(base_field)
    for field in _create_models(tree, "//RecStructure/rst", Field, FIELD_TAGS):
        data.add_field(field)


# === Records and field values ===


def parse_partial_date(value: str | None) -> PartialDate | None:
    """Split an ISO like date string "YYYY[-MM[-DD]]" into its components."""
    if not value:
        return None
    match = DATE_PATTERN.match(value)
    if match is None:
        return PartialDate(raw=value)
    return PartialDate(raw=value, year=match[1], month=match[2], day=match[3])


def _date_components(element) -> dict:
    return {
        "year": _text(element, "year"),
        "month": _text(element, "month"),
        "day": _text(element, "day"),
    }


def _partial_date_from_element(element) -> PartialDate:
    return PartialDate(raw=_text(element, "raw") or "", **_date_components(element))


def _json_date_bound(value) -> PartialDate | None:
    # Years are often stored as JSON numbers.
    if value is None or isinstance(value, (dict, list)):
        return None
    return parse_partial_date(str(value))


def _decode_json_date(raw: str) -> dict:
    """Decode Heurist's JSON date objects; empty dict for other raw values."""
    if not raw.startswith("{"):
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug('Date "%s" is not a JSON date object.', raw)
        return {}
    if not isinstance(decoded, dict):
        return {}
    timestamp = decoded.get("timestamp")
    if isinstance(timestamp, dict) and timestamp.get("in") is not None:
        date = _json_date_bound(timestamp["in"])
        if date is not None:
            return {"year": date.year, "month": date.month, "day": date.day}
    start, end = decoded.get("start"), decoded.get("end")
    if isinstance(start, dict) or isinstance(end, dict):
        start = start if isinstance(start, dict) else {}
        end = end if isinstance(end, dict) else {}
        return {
            "is_range": True,
            "earliest": _json_date_bound(start.get("earliest")),
            "latest": _json_date_bound(end.get("latest")),
        }
    return {}


DATE_RANGE_BOUNDS = {
    "TPQ": "earliest",
    "TAQ": "latest",
    "PDB": "probable_begin",
    "PDE": "probable_end",
}


def create_date_value(field_id: str, detail) -> DateFieldValue:
    raw = _text(detail, "raw") or (detail.text or "").strip()
    temporal = detail.find("temporal")
    data = {}
    if temporal is None:
        data = {k: v for k, v in _date_components(detail).items() if v is not None}
        if not data:
            data = _decode_json_date(raw)
    elif temporal.get("type") == "Date Range":
        data["is_range"] = True
        for date in temporal.findall("date"):
            bound = DATE_RANGE_BOUNDS.get(date.get("type"))
            if bound is not None:
                data[bound] = _partial_date_from_element(date)
    elif temporal.get("type") == "Simple Date":
        for date in temporal.findall("date"):
            if date.get("type") == "DAT":
                data = _date_components(date)
                break
    return DateFieldValue(field_id=field_id, value=raw, **data)


def create_geo_value(field_id: str, detail) -> GeoFieldValue:
    return GeoFieldValue(
        field_id=field_id,
        value=_text(detail, "geo/wkt") or "",
        geo_type=_text(detail, "geo/type"),
    )


def create_file_value(field_id: str, detail) -> FileFieldValue:
    file_size = None
    size_element = detail.find("file/fileSize")
    if size_element is not None and size_element.text and size_element.text.strip():
        try:
            file_size = FileFieldValue.normalise_file_size(
                size_element.text.strip(), size_element.get("units")
            )
        except ValueError as exc:
            logger.warning("Ignoring file size of field %s: %s", field_id, exc)
    file_name = _text(detail, "file/origName")
    return FileFieldValue(
        field_id=field_id,
        value=file_name or "",
        file_id=_text(detail, "file/id"),
        file_name=file_name,
        mime_type=_text(detail, "file/mimeType"),
        file_size=file_size,
        date=_text(detail, "file/date"),
        url=_text(detail, "file/url"),
    )


def create_field_value(
    data: HeuristData, record_type_id: str, detail
) -> GenericFieldValue | None:
    """Create the typed field value of a <detail> element of a record."""
    base_field_id = detail.get("id")
    field = data.find_field_by_record_type_and_base_field(record_type_id, base_field_id)
    if field is None:
        # Values on base fields that are not part of the record structure.
        field = data.create_non_standard_field(record_type_id, base_field_id)
    if field is None:
        logger.warning(
            "Can't find the base field (%s) on record type (%s).",
            base_field_id,
            record_type_id,
        )
        return None
    base_field = data.find_base_field(field.base_field_id)
    if base_field is None:
        logger.warning("Can't find the base field (%s).", field.base_field_id)
        return None
    value = (detail.text or "").strip()

    if base_field.type == TYPE_TERM:
        term_id = detail.get("termID") or value
        if data.find_term(term_id) is None:
            logger.warning("Can't find the referenced term (%s).", term_id)
            return None
        return TermFieldValue(field_id=field.id, value=value, term_id=term_id)
    if base_field.type == TYPE_RECORD_POINTER:
        if data.find_record(value) is None:
            logger.warning("Can't find the referenced record (%s).", value)
            return None
        return RecordPointerFieldValue(field_id=field.id, value=value, target_id=value)
    if base_field.type == TYPE_DATE:
        return create_date_value(field.id, detail)
    if base_field.type == TYPE_GEO:
        return create_geo_value(field.id, detail)
    if base_field.type == TYPE_FILE:
        return create_file_value(field.id, detail)
    return GenericFieldValue(field_id=field.id, value=value)


def read_records(data: HeuristData, tree) -> None:
    elements = tree.xpath("//records/record")
    # All records must exist before record pointers can be checked.
    for element in elements:
        record_id = _text(element, "id")
        type_element = element.find("type")
        record_type_id = type_element.get("id") if type_element is not None else None
        if not record_id or not record_type_id:
            logger.warning(
                "Skipping record without id or type in line %s.", element.sourceline
            )
            continue
        data.add_record(
            Record(id=record_id, title=_text(element, "title"), record_type_id=record_type_id)
        )
    for element in elements:
        record = data.find_record(_text(element, "id") or "")
        if record is None:
            continue
        for detail in element.iterfind("detail"):
            field_value = create_field_value(data, record.record_type_id, detail)
            if field_value is not None:
                record.add_field_value(field_value)


def read_heurist_export(
    input_dir: Path,
    db_name: str | None = None,
    name: str | None = None,
    description: str | None = None,
) -> HeuristData:
    """Read the Heurist export in input_dir.

    The database name defaults to the name of the directory.
    """
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        msg = f'Export directory "{input_dir}" not found.'
        raise ConversionError(msg)
    settings = config.SETTINGS
    data = HeuristData(
        db_name=db_name if db_name is not None else input_dir.name,
        name=name,
        description=description,
    )
    structure = parse_xml(input_dir / settings.structure_file)
    read_structure(data, structure)
    records = parse_xml(input_dir / settings.records_file)
    read_records(data, records)
    logger.debug("Read Heurist export %s: %s", input_dir, data.counts())
    return data
