"""Conversion of Heurist data into RO-Crate metadata.

The conversion runs in a fixed order:

1. root name and description from the Heurist database,
2. names and custom definitions from the configuration,
3. vocabularies and terms,
4. records, in two passes. The first pass creates an entity for every
   record, the second pass adds the field values. Record pointers can only
   be resolved after the first pass completed.

Classes and properties are derived from the Heurist record types and fields.
Their definitions are created the first time they are used.
"""

import logging
from collections import Counter

from rdflib.namespace import SDO

from heurist2rocrate import config
from heurist2rocrate.configuration import Configuration
from heurist2rocrate.heurist import (
    ATTR_CODE,
    ATTR_DESCRIPTION,
    ATTR_LABEL,
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
    Record,
    RecordPointerFieldValue,
    RecordType,
    Term,
    TermFieldValue,
    create_term_attribute_id,
)
from heurist2rocrate.name_resolver import NameResolver
from heurist2rocrate.rocrate import (
    ClassDefinition,
    Entity,
    Metadata,
    PropertyDefinition,
)
from heurist2rocrate.utils import (
    EntityKind,
    entity_identifier,
    entity_identifier_from_id,
    unique_everseen,
)
from heurist2rocrate.value_functions import create_value_function

module_logger = logging.getLogger(__name__)

STATS_CATEGORIES = ("terms", "records", "classes", "properties", "files")


class Converter:
    """Convert one Heurist export into RO-Crate metadata."""

    def __init__(
        self,
        data: HeuristData,
        configuration: Configuration | None = None,
        logger=None,
    ):
        self.data = data
        self.configuration = configuration or Configuration()
        self.logger = logger or module_logger
        self.metadata = Metadata()
        self.name_resolver = NameResolver()
        self.namespace = config.SETTINGS.namespace_for(data.db_name)
        # engine key -> id of the RO-Crate entity created for it
        self._id_map: dict[str, str] = {}
        self._stats = Counter({category: 0 for category in STATS_CATEGORIES})
        self._uploaded_files: list[str] = []
        self._converted = False

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    @property
    def uploaded_files(self) -> list[str]:
        """Stored names of the local uploads referenced by the crate."""
        return unique_everseen(self._uploaded_files)

    def convert(self) -> Metadata:
        if self._converted:
            return self.metadata
        if self.data.name:
            self.metadata.set_root_entity_name(self.data.name)
        if self.data.description:
            self.metadata.set_root_entity_description(self.data.description)
        self.logger.info("Processing configuration...")
        self.process_configuration()
        self.logger.info("Processing Heurist terms...")
        self.convert_terms()
        self.logger.info("Processing Heurist records...")
        self.convert_records()
        self._converted = True
        return self.metadata

    # --- helpers ---

    def _namespaced_id(self, name: str) -> str:
        return f"{self.namespace}#{name}"

    def _get_entity_id(self, heurist_entity) -> str | None:
        return self._id_map.get(entity_identifier(heurist_entity))

    def _get_entity(self, heurist_entity) -> Entity | None:
        entity_id = self._get_entity_id(heurist_entity)
        return self.metadata.get_entity(entity_id) if entity_id else None

    def _register(self, heurist_entity, entity: Entity, category: str) -> None:
        self.metadata.add_entity(entity)
        self._id_map[entity_identifier(heurist_entity)] = entity.id
        self._stats[category] += 1

    def _add_definition(self, definition: Entity, name: str) -> None:
        self.metadata.context.add(name, definition.id)
        self.metadata.add_entity(definition)

    # --- configuration ---

    def process_configuration(self) -> None:
        """Seed the name resolver and add the custom definitions."""
        cfg = self.configuration
        for term_id, class_name in cfg.term_class_map.items():
            if self.data.find_term(term_id) is None:
                self.logger.warning(
                    "Can't find the mapped term (%s) defined in the configuration.",
                    term_id,
                )
                continue
            self.name_resolver.add_entry_from_identifier(
                entity_identifier_from_id(EntityKind.TERM, term_id), class_name
            )
        for attribute_id, property_name in cfg.term_property_map.items():
            self.name_resolver.add_entry_from_identifier(
                entity_identifier_from_id(EntityKind.TERM, attribute_id), property_name
            )
        for record_type_id, class_name in cfg.record_type_class_map.items():
            if self.data.find_record_type(record_type_id) is None:
                self.logger.warning(
                    "Can't find the mapped record type (%s) defined in the configuration.",
                    record_type_id,
                )
                continue
            self.name_resolver.add_entry_from_identifier(
                entity_identifier_from_id(EntityKind.RECORD_TYPE, record_type_id),
                class_name,
            )
        for field_id, property_name in cfg.field_property_map.items():
            if ":" in field_id:
                kind, found = EntityKind.FIELD, self.data.find_field(field_id)
            else:
                kind, found = EntityKind.BASE_FIELD, self.data.find_base_field(field_id)
            if found is None:
                self.logger.warning(
                    "Can't find the mapped %s (%s) defined in the configuration.",
                    kind.value.replace("_", " "),
                    field_id,
                )
                continue
            self.name_resolver.add_entry_from_identifier(
                entity_identifier_from_id(kind, field_id), property_name
            )
        for label, definition in cfg.custom_class_map.items():
            definition.set("@id", self._namespaced_id(label))
            self._add_definition(definition, label)
            self._stats["classes"] += 1
        for label, definition in cfg.custom_property_map.items():
            definition.set("@id", self._namespaced_id(label))
            self._add_definition(definition, label)
            self._stats["properties"] += 1

    # --- terms ---

    def convert_terms(self) -> None:
        for vocabulary in self.data.vocabularies:
            class_name = self.configuration.get_term_class(vocabulary.id)
            if class_name is not None:
                self._convert_mapped_vocabulary(vocabulary, class_name)
            else:
                self._convert_vocabulary(vocabulary)

    def _convert_mapped_vocabulary(self, vocabulary: Term, class_name: str) -> None:
        # Each term becomes an entity of the configured class; the vocabulary
        # itself is only represented by that class.
        attribute_properties = {
            attribute: self.configuration.get_term_property(
                create_term_attribute_id(vocabulary.id, attribute)
            )
            for attribute in (ATTR_LABEL, ATTR_DESCRIPTION, ATTR_CODE)
        }
        for term in self.data.get_descendant_terms(vocabulary):
            entity = Entity(class_name, f"#term_{term.id}")
            for attribute, property_name in attribute_properties.items():
                value = getattr(term, attribute)
                if property_name is None:
                    continue
                if attribute == ATTR_LABEL or value:
                    entity.set(property_name, value)
            self.metadata.root_entity.add_part(entity)
            self._register(term, entity, "terms")

    def _convert_vocabulary(self, vocabulary: Term) -> None:
        term_set = Entity("DefinedTermSet", f"#term_{vocabulary.id}")
        term_set.set("name", vocabulary.label)
        if vocabulary.description:
            term_set.set("description", vocabulary.description)
        for term in self.data.get_descendant_terms(vocabulary):
            entity = Entity("DefinedTerm", f"#term_{term.id}")
            entity.set("name", term.label)
            if term.description:
                entity.set("description", term.description)
            if term.code:
                entity.set("termCode", term.code)
            term_set.append("hasDefinedTerm", entity)
            self._register(term, entity, "terms")
        self.metadata.root_entity.add_part(term_set)
        self._register(vocabulary, term_set, "terms")

    # --- records ---

    def convert_records(self) -> None:
        records = list(self.data.records.values())
        # Pass 1: an entity for every record
        for record in records:
            record_type = self.data.find_record_type(record.record_type_id)
            if record_type is None:
                self.logger.warning(
                    "Can't find the record type (%s) of record (%s).",
                    record.record_type_id,
                    record.id,
                )
                continue
            class_name = self.get_record_type_class_name(record_type)
            entity = Entity(class_name, f"#rec_{record.id}")
            self.metadata.root_entity.add_part(entity)
            self._register(record, entity, "records")
            self.logger.debug(
                'Record (%s) "%s" -> %s %s', record.id, record.title, class_name, entity.id
            )
        # Pass 2: the field values
        for record in records:
            entity = self._get_entity(record)
            if entity is not None:
                self._convert_record_fields(record, entity)

    def _convert_record_fields(self, record: Record, entity: Entity) -> None:
        for field_id, field_values in record.values.items():
            field = self.data.find_field(field_id)
            if field is None or field.record_type_id != record.record_type_id:
                self.logger.warning(
                    "Can't find the field (%s) on record type (%s).",
                    field_id,
                    record.record_type_id,
                )
                continue
            base_field = self.data.find_base_field(field.base_field_id)
            if base_field is None:
                self.logger.warning(
                    "Can't find the base field (%s) of field (%s).",
                    field.base_field_id,
                    field_id,
                )
                continue
            if self.name_resolver.has_resolved(
                field
            ) or self.name_resolver.has_name_conflict(base_field):
                property_name = self.get_field_property_name(field, base_field)
            else:
                property_name = self.get_base_field_property_name(base_field)
            for field_value in field_values:
                self.set_record_field_value(
                    entity, property_name, field_value, field, base_field
                )

    def set_record_field_value(
        self,
        entity: Entity,
        property_name: str,
        field_value: GenericFieldValue,
        field: Field,
        base_field: BaseField,
    ) -> None:
        function = self.configuration.get_field_function(
            field.id
        ) or self.configuration.get_field_function(base_field.id)
        if function is not None:
            entity.append(property_name, create_value_function(function).apply(field_value))
        elif isinstance(field_value, DateFieldValue):
            entity.append(property_name, field_value.iso_date())
        elif isinstance(field_value, GeoFieldValue):
            self._set_geo_value(entity, property_name, field_value)
        elif isinstance(field_value, FileFieldValue):
            self._set_file_value(entity, property_name, field_value)
        elif isinstance(field_value, TermFieldValue):
            self._set_term_value(entity, property_name, field_value)
        elif isinstance(field_value, RecordPointerFieldValue):
            self._set_record_pointer_value(entity, property_name, field_value)
        else:
            entity.append(property_name, field_value.value)

    def _set_geo_value(
        self, entity: Entity, property_name: str, field_value: GeoFieldValue
    ) -> None:
        coordinates = field_value.point_coordinates()
        shape = field_value.shape()
        if field_value.is_point and coordinates is not None:
            geo = Entity("GeoCoordinates")
            geo.set("latitude", coordinates[0])
            geo.set("longitude", coordinates[1])
        elif not field_value.is_point and shape is not None:
            tag, coordinate_string = shape
            geo = Entity("GeoShape")
            geo.set("polygon" if tag == "polygon" else "line", coordinate_string)
        else:
            self.logger.warning('Unsupported geo value "%s".', field_value.value)
            return
        self.metadata.add_entity(geo)
        entity.append(property_name, geo)

    def _set_file_value(
        self, entity: Entity, property_name: str, field_value: FileFieldValue
    ) -> None:
        if field_value.is_remote:
            if not field_value.url:
                self.logger.warning(
                    "Remote file (%s) without URL is ignored.", field_value.file_id
                )
                return
            file_entity = Entity("File", field_value.url)
        else:
            local_name = field_value.local_name
            if local_name is None:
                self.logger.warning(
                    'Incomplete file value "%s" is ignored.', field_value.value
                )
                return
            file_entity = Entity("File", local_name)
            self._uploaded_files.append(local_name)
        if field_value.file_name and not field_value.is_remote:
            file_entity.set("name", field_value.file_name)
        if field_value.file_size:
            file_entity.set("contentSize", field_value.file_size)
        if field_value.mime_type:
            file_entity.set("encodingFormat", field_value.mime_type)
        if field_value.date:
            file_entity.set("uploadDate", field_value.date)
        if self.metadata.get_entity(file_entity.id) is None:
            self._stats["files"] += 1
            self.metadata.root_entity.add_part(file_entity)
            self.metadata.add_entity(file_entity)
        else:
            # The same upload referenced again, keep a single entity.
            file_entity = self.metadata.get_entity(file_entity.id)
        entity.append(property_name, file_entity)

    def _set_term_value(
        self, entity: Entity, property_name: str, field_value: TermFieldValue
    ) -> None:
        term_entity_id = self._id_map.get(
            entity_identifier_from_id(EntityKind.TERM, field_value.term_id)
        )
        if term_entity_id is None:
            self.logger.warning(
                "Can't find the referenced term (%s).", field_value.term_id
            )
            return
        entity.append(property_name, self.metadata.get_entity(term_entity_id))

    def _set_record_pointer_value(
        self, entity: Entity, property_name: str, field_value: RecordPointerFieldValue
    ) -> None:
        target_entity_id = self._id_map.get(
            entity_identifier_from_id(EntityKind.RECORD, field_value.target_id)
        )
        if target_entity_id is None:
            self.logger.warning(
                "Can't find the referenced record (%s).", field_value.target_id
            )
            return
        # Only the id, the target is emitted as a part of the root entity.
        entity.append(property_name, {"@id": target_entity_id})

    # --- class and property definitions ---

    def get_record_type_class_name(self, record_type: RecordType) -> str:
        if not self.name_resolver.has_resolved(record_type):
            name = self.name_resolver.resolve(record_type, self.data.db_name)
            definition = ClassDefinition(self._namespaced_id(name))
            definition.name = name
            if record_type.description:
                definition.description = record_type.description
            self._add_definition(definition, name)
            self._id_map[entity_identifier(record_type)] = definition.id
            self._stats["classes"] += 1
        return self.name_resolver.resolve(record_type)

    def get_base_field_property_name(self, base_field: BaseField) -> str:
        if not self.name_resolver.has_resolved(base_field):
            name = self.name_resolver.resolve(base_field)
            definition = self._create_property_definition(
                name,
                base_field.description,
                self.data.get_base_field_used_record_types(base_field),
                base_field,
            )
            self._id_map[entity_identifier(base_field)] = definition.id
        return self.name_resolver.resolve(base_field)

    def get_field_property_name(self, field: Field, base_field: BaseField) -> str:
        if not self.name_resolver.has_resolved(field):
            record_type = self.data.find_record_type(field.record_type_id)
            name = self.name_resolver.resolve(field, record_type.name)
            definition = self._create_property_definition(
                name, field.description, [record_type], base_field
            )
            self._id_map[entity_identifier(field)] = definition.id
        return self.name_resolver.resolve(field)

    def _create_property_definition(
        self,
        name: str,
        description: str | None,
        domain_record_types: list[RecordType],
        base_field: BaseField,
    ) -> PropertyDefinition:
        definition = PropertyDefinition(self._namespaced_id(name))
        definition.name = name
        if description:
            definition.description = description
        self._set_property_domains(definition, domain_record_types)
        self._set_property_ranges(definition, base_field)
        self._add_definition(definition, name)
        self._stats["properties"] += 1
        return definition

    def _configured_class_id(self, record_type: RecordType) -> str | None:
        """Id of the configured class of a record type without own definition."""
        class_name = self.configuration.get_record_type_class(record_type.id)
        if class_name is None:
            return None
        return self.metadata.context.get(class_name) or config.SETTINGS.external_class_id(
            class_name
        )

    def _class_references(self, record_types: list[RecordType]) -> list:
        """Class definitions or external stubs for the record types, without duplicates."""
        references = []
        added_ids = set()
        for record_type in record_types:
            definition = self._get_entity(record_type)
            if definition is not None:
                reference, reference_id = definition, definition.id
            else:
                reference_id = self._configured_class_id(record_type)
                if reference_id is None:
                    self.logger.debug(
                        "Record type (%s) has no class, skipped.", record_type.id
                    )
                    continue
                reference = {"@id": reference_id}
            if reference_id not in added_ids:
                added_ids.add(reference_id)
                references.append(reference)
        return references

    def _set_property_domains(
        self, definition: PropertyDefinition, record_types: list[RecordType]
    ) -> None:
        for reference in self._class_references(record_types):
            if isinstance(reference, Entity):
                definition.add_domain(reference)
            else:
                definition.add_domain_from_id(reference["@id"])

    def _set_property_ranges(
        self, definition: PropertyDefinition, base_field: BaseField
    ) -> None:
        if base_field.type == TYPE_TERM:
            definition.add_range_from_id(str(SDO.DefinedTerm))
        elif base_field.type == TYPE_FILE:
            definition.add_range_from_id(str(SDO.MediaObject))
        elif base_field.type == TYPE_GEO:
            definition.add_range_from_id(str(SDO.GeoCoordinates))
            definition.add_range_from_id(str(SDO.GeoShape))
        elif base_field.type == TYPE_RECORD_POINTER:
            targets = self.data.get_target_record_types(base_field)
            for reference in self._class_references(targets):
                if isinstance(reference, Entity):
                    definition.add_range(reference)
                else:
                    definition.add_range_from_id(reference["@id"])
