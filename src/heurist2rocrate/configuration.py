"""Mapping configuration for the conversion.

The configuration itself is an RO-Crate. Mapping entities reference the
Heurist entity they map via "_sourceType"; the mapping entity's "@type" is the
target class. Example of a record type mapping:

    {"@id": "#person", "@type": "Person",
     "_sourceType": {"@id": "#rt_10"},
     "givenName": {"@id": "#f_18"}}
    {"@id": "#rt_10", "@type": "_RecordType", "_sourceIdentifier": "10"}
    {"@id": "#f_18", "@type": "_Field", "_sourceIdentifier": "18"}

Class and property definitions whose label does not start with "_" are custom
definitions that are copied into the converted crate.
"""

import json
import logging
from pathlib import Path

from heurist2rocrate.heurist import (
    ATTR_CODE,
    ATTR_DESCRIPTION,
    ATTR_LABEL,
    create_field_id,
    create_term_attribute_id,
)
from heurist2rocrate.rocrate import (
    CLASS_TYPE,
    PROPERTY_TYPE,
    Entity,
    Metadata,
)
from heurist2rocrate.utils import ConfigurationError, ConversionError

module_logger = logging.getLogger(__name__)

SOURCE_RECORD_TYPE = "_RecordType"
SOURCE_VOCABULARY = "_Vocabulary"
TARGET_FIELD = "_Field"
TARGET_BASE_FIELD = "_BaseField"

TERM_ATTRIBUTE_TARGETS = {
    "_VocabularyTermLabel": ATTR_LABEL,
    "_VocabularyTermDescription": ATTR_DESCRIPTION,
    "_VocabularyTermCode": ATTR_CODE,
}

EXCLUDED_PROPERTIES = ("@id", "@type", "_sourceType", "name")


class Configuration:
    def __init__(self, metadata: Metadata | None = None, logger=None):
        self.logger = logger or module_logger
        self.metadata = metadata if metadata is not None else Metadata()
        # record type id -> class name
        self.record_type_class_map: dict[str, str] = {}
        # vocabulary term id -> class name
        self.term_class_map: dict[str, str] = {}
        # "<termId>:<attribute>" -> property name
        self.term_property_map: dict[str, str] = {}
        # field id or base field id -> property name
        self.field_property_map: dict[str, str] = {}
        # field id or base field id -> value function definition
        self.field_function_map: dict[str, Entity] = {}
        # label -> definition
        self.custom_class_map: dict[str, Entity] = {}
        self.custom_property_map: dict[str, Entity] = {}
        if metadata is not None:
            self._parse()

    @classmethod
    def from_dict(cls, data: dict, logger=None) -> "Configuration":
        return cls(Metadata.from_dict(data), logger=logger)

    @classmethod
    def from_file(cls, path: Path, logger=None) -> "Configuration":
        try:
            with Path(path).open(encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, json.JSONDecodeError) as exc:
            msg = f'Cannot read the configuration "{path}": {exc}'
            raise ConfigurationError(msg) from exc
        try:
            return cls.from_dict(data, logger=logger)
        except ConfigurationError:
            raise
        except ConversionError as exc:
            msg = f'Invalid configuration "{path}": {exc}'
            raise ConfigurationError(msg) from exc

    def _parse(self) -> None:
        for entity in self.metadata.entities.values():
            source_type = entity.get("_sourceType")
            if source_type is not None:
                self._parse_mapping(entity, source_type)
            else:
                self._parse_custom_definition(entity)

    def _parse_custom_definition(self, entity: Entity) -> None:
        if entity.type not in (CLASS_TYPE, PROPERTY_TYPE):
            return
        label = entity.get("rdfs:label")
        if not label or not isinstance(label, str):
            self.logger.warning("Definition without label (%s) is ignored.", entity.id)
            return
        if label.startswith("_"):
            return
        if entity.type == CLASS_TYPE:
            self.custom_class_map[label] = entity
        else:
            self.custom_property_map[label] = entity

    def _parse_mapping(self, entity: Entity, source_type) -> None:
        if not isinstance(source_type, Entity):
            self.logger.warning(
                "The `_sourceType` of entity (%s) is not an entity of the configuration.",
                entity.id,
            )
            return
        source_id = source_type.get("_sourceIdentifier")
        if not source_id:
            self.logger.warning(
                "The `_sourceIdentifier` is missing in the source type (%s).",
                source_type.id,
            )
            return
        source_id = str(source_id)
        class_name = entity.type
        if not class_name or not isinstance(class_name, str):
            self.logger.warning(
                "Missing target class type of entity (%s).", entity.id
            )
            return
        if source_type.type == SOURCE_RECORD_TYPE:
            self.record_type_class_map[source_id] = class_name
            self._map_record_properties(entity, source_id)
        elif source_type.type == SOURCE_VOCABULARY:
            self.term_class_map[source_id] = class_name
            self._map_term_attributes(entity, source_id)
        else:
            self.logger.warning(
                "Unsupported source type `%s` (%s).", source_type.type, source_type.id
            )

    @staticmethod
    def _mapped_properties(entity: Entity):
        for name, target in entity.properties.items():
            if name in EXCLUDED_PROPERTIES:
                continue
            yield ("name" if name == "_name" else name), target

    def _map_record_properties(self, entity: Entity, record_type_id: str) -> None:
        for name, target in self._mapped_properties(entity):
            if not isinstance(target, Entity):
                self.logger.warning(
                    "Invalid mapping of property `%s` in entity (%s).", name, entity.id
                )
                continue
            target_id = target.get("_sourceIdentifier")
            if not target_id:
                self.logger.warning(
                    "The `_sourceIdentifier` is missing in the target (%s).", target.id
                )
                continue
            target_id = str(target_id)
            if target.type == TARGET_FIELD:
                target_id = create_field_id(record_type_id, target_id)
            elif target.type != TARGET_BASE_FIELD:
                self.logger.warning(
                    "Invalid mapping type (%s) of property `%s` in entity (%s).",
                    target.type,
                    name,
                    entity.id,
                )
                continue
            self.field_property_map[target_id] = name
            function = target.get("_valueFunction")
            if function is None:
                continue
            if isinstance(function, Entity):
                self.field_function_map[target_id] = function
            else:
                self.logger.warning(
                    "Invalid value function in entity (%s).", target.id
                )

    def _map_term_attributes(self, entity: Entity, term_id: str) -> None:
        for name, target in self._mapped_properties(entity):
            if not isinstance(target, Entity):
                self.logger.warning(
                    "Invalid mapping of property `%s` in entity (%s).", name, entity.id
                )
                continue
            attribute = TERM_ATTRIBUTE_TARGETS.get(target.type)
            if attribute is None:
                self.logger.warning(
                    "Invalid mapping type (%s) of property `%s` in entity (%s).",
                    target.type,
                    name,
                    entity.id,
                )
                continue
            self.term_property_map[create_term_attribute_id(term_id, attribute)] = name

    # --- lookups ---

    def get_record_type_class(self, record_type_id: str) -> str | None:
        return self.record_type_class_map.get(record_type_id)

    def get_term_class(self, term_id: str) -> str | None:
        return self.term_class_map.get(term_id)

    def get_term_property(self, term_attribute_id: str) -> str | None:
        return self.term_property_map.get(term_attribute_id)

    def get_field_property(self, field_id: str) -> str | None:
        return self.field_property_map.get(field_id)

    def get_field_function(self, field_id: str) -> Entity | None:
        return self.field_function_map.get(field_id)

    def get_custom_class(self, name: str) -> Entity | None:
        return self.custom_class_map.get(name)

    def get_custom_property(self, name: str) -> Entity | None:
        return self.custom_property_map.get(name)
