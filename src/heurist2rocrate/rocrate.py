"""Model of RO-Crate metadata as a graph of linked entities.

Entities hold live references to other entities. Serialization flattens the
graph into the JSON-LD "@graph" array where references become {"@id": ...}
stubs and each entity is emitted once. Parsing reverses this by linking the
stubs back to the entities of the same document.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Any

from heurist2rocrate.utils import ConversionError

logger = logging.getLogger(__name__)

CRATE_CONTEXT_URL = "https://w3id.org/ro/crate/1.1/context"
CRATE_CONFORMS_TO = "https://w3id.org/ro/crate/1.1"
METADATA_FILE_ID = "ro-crate-metadata.json"
ROOT_ENTITY_ID = "./"

CLASS_TYPE = "rdfs:Class"
PROPERTY_TYPE = "rdf:Property"


def is_reference(value: Any) -> bool:
    """True for a {"@id": ...} stub of an entity."""
    return isinstance(value, dict) and "@id" in value


class Entity:
    """A node of the RO-Crate graph."""

    def __init__(self, type_: str | list[str], id_: str | None = None):
        self._data: dict[str, Any] = {}
        if not id_:
            id_ = f"#{uuid.uuid4()}"
        self.set("@id", id_)
        self.set("@type", type_)

    def __repr__(self):
        return f"{type(self).__name__}(id={self.id!r}, type={self.type!r})"

    @property
    def id(self) -> str:
        return self._data["@id"]

    @property
    def type(self) -> str | list[str]:
        return self._data["@type"]

    @property
    def properties(self) -> dict[str, Any]:
        return self._data

    def get(self, name: str, default=None):
        return self._data.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self._data[name] = value

    def unset(self, name: str) -> None:
        self._data.pop(name, None)

    def append(self, name: str, value: Any) -> None:
        """Add a value without overwriting existing values of the property.

        A property with a single value becomes a list of values.
        """
        if name not in self._data:
            self._data[name] = value
        elif isinstance(self._data[name], list):
            self._data[name].append(value)
        else:
            self._data[name] = [self._data[name], value]

    def add_part(self, part: "Entity") -> None:
        self.append("hasPart", part)

    @property
    def parts(self) -> list["Entity"]:
        parts = self._data.get("hasPart", [])
        return parts if isinstance(parts, list) else [parts]

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of this entity only with references replaced by stubs."""
        return {name: _stub_references(value) for name, value in self._data.items()}

    def linked_entities(self) -> list["Entity"]:
        """Entities directly referenced from the properties of this entity."""
        linked = []
        for value in self._data.values():
            items = value if isinstance(value, list) else [value]
            linked.extend(item for item in items if isinstance(item, Entity))
        return linked

    def to_list(self) -> list[dict[str, Any]]:
        """Flatten this entity and all entities reachable from it.

        The result starts with this entity followed by the referenced entities
        in depth-first order. Every id occurs once, also for cyclic references.
        """
        result = []
        seen = set()
        stack = [self]
        while stack:
            entity = stack.pop()
            if entity.id in seen:
                continue
            seen.add(entity.id)
            result.append(entity.to_dict())
            # reversed to visit references in property order
            stack.extend(reversed(entity.linked_entities()))
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        """Create an (unlinked) entity from a plain dict of the "@graph" array."""
        try:
            id_, type_ = data["@id"], data["@type"]
        except KeyError as exc:
            msg = f"Entity without {exc.args[0]}: {data}"
            raise ConversionError(msg) from exc
        if type_ == CLASS_TYPE:
            entity = ClassDefinition(id_)
        elif type_ == PROPERTY_TYPE:
            entity = PropertyDefinition(id_)
        else:
            entity = Entity(type_, id_)
        for name, value in data.items():
            entity.set(name, value)
        return entity


def _stub_references(value: Any) -> Any:
    if isinstance(value, Entity):
        return {"@id": value.id}
    if isinstance(value, list):
        return [_stub_references(item) for item in value]
    return value


class ClassDefinition(Entity):
    def __init__(self, id_: str | None = None):
        super().__init__(CLASS_TYPE, id_)

    @property
    def name(self) -> str | None:
        return self.get("rdfs:label")

    @name.setter
    def name(self, name: str) -> None:
        self.set("rdfs:label", name)

    @property
    def description(self) -> str | None:
        return self.get("rdfs:comment")

    @description.setter
    def description(self, description: str) -> None:
        self.set("rdfs:comment", description)


class PropertyDefinition(Entity):
    def __init__(self, id_: str | None = None):
        super().__init__(PROPERTY_TYPE, id_)

    @property
    def name(self) -> str | None:
        return self.get("rdfs:label")

    @name.setter
    def name(self, name: str) -> None:
        self.set("rdfs:label", name)

    @property
    def description(self) -> str | None:
        return self.get("rdfs:comment")

    @description.setter
    def description(self, description: str) -> None:
        self.set("rdfs:comment", description)

    @staticmethod
    def _as_list(value) -> list:
        if value is None:
            return []
        return value if isinstance(value, list) else [value]

    @property
    def domains(self) -> list:
        """Domain classes: ClassDefinitions and/or {"@id": ...} stubs."""
        return self._as_list(self.get("domainIncludes"))

    def add_domain(self, domain: ClassDefinition) -> None:
        self.append("domainIncludes", domain)

    def add_domain_from_id(self, id_: str) -> None:
        """Add an external domain, e.g. a schema.org class."""
        self.append("domainIncludes", {"@id": id_})

    @property
    def ranges(self) -> list:
        return self._as_list(self.get("rangeIncludes"))

    def add_range(self, range_: ClassDefinition) -> None:
        self.append("rangeIncludes", range_)

    def add_range_from_id(self, id_: str) -> None:
        self.append("rangeIncludes", {"@id": id_})


class Context:
    """Extension terms of the crate on top of the RO-Crate base context."""

    def __init__(self, data: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(data or {})

    def __contains__(self, name: str) -> bool:
        return name in self._data

    def __len__(self):
        return len(self._data)

    def add(self, name: str, uri: str) -> None:
        self._data[name] = uri

    def remove(self, name: str) -> None:
        self._data.pop(name, None)

    def get(self, name: str) -> str | None:
        return self._data.get(name)

    def items(self):
        return self._data.items()

    def to_value(self) -> str | list:
        """The value of "@context" in the metadata document."""
        if not self._data:
            return CRATE_CONTEXT_URL
        return [CRATE_CONTEXT_URL, dict(self._data)]

    @classmethod
    def from_value(cls, value) -> "Context":
        context = cls()
        items = value if isinstance(value, list) else [value]
        for item in items:
            if isinstance(item, dict):
                for name, uri in item.items():
                    context.add(name, uri)
            elif item != CRATE_CONTEXT_URL:
                logger.debug('Ignoring context "%s".', item)
        return context


class Metadata:
    """The RO-Crate metadata document."""

    def __init__(self):
        self.context = Context()
        self.main_entity = self.create_main_entity()
        self.entities: dict[str, Entity] = {}
        self.add_entity(self.create_root_entity())

    def __len__(self):
        return len(self.entities)

    def get_entity(self, id_: str) -> Entity | None:
        return self.entities.get(id_)

    def add_entity(self, entity: Entity) -> None:
        """Add entity to the metadata; an existing entity with the same id is replaced."""
        existing = self.entities.get(entity.id)
        if existing is not None and existing is not entity:
            logger.warning("Replacing entity with duplicate id (%s).", entity.id)
        self.entities[entity.id] = entity

    @property
    def root_entity(self) -> Entity:
        return self.entities[ROOT_ENTITY_ID]

    def set_root_entity_name(self, name: str) -> None:
        self.root_entity.set("name", name)

    def set_root_entity_description(self, description: str) -> None:
        self.root_entity.set("description", description)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the whole graph to the JSON-LD document structure."""
        graph = []
        added_ids = set()
        for entity in [self.main_entity, *self.entities.values()]:
            if entity.id in added_ids:
                continue
            for item in entity.to_list():
                if item["@id"] not in added_ids:
                    graph.append(item)
                    added_ids.add(item["@id"])
        return {"@context": self.context.to_value(), "@graph": graph}

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Metadata":
        """Parse a JSON-LD document and link the entities by their references."""
        if "@graph" not in data:
            msg = 'The RO-Crate metadata has no "@graph".'
            raise ConversionError(msg)
        metadata = cls()
        metadata.context = Context.from_value(data.get("@context", CRATE_CONTEXT_URL))
        metadata.entities = {}
        for entity_data in data["@graph"]:
            entity = Entity.from_dict(entity_data)
            if entity.id == METADATA_FILE_ID and entity.type == "CreativeWork":
                metadata.main_entity = entity
            else:
                metadata.add_entity(entity)
        if ROOT_ENTITY_ID not in metadata.entities:
            logger.debug("No root entity found, adding an empty one.")
            metadata.add_entity(cls.create_root_entity())
        metadata._link_entities()
        return metadata

    @classmethod
    def from_file(cls, path: Path) -> "Metadata":
        try:
            with Path(path).open(encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, json.JSONDecodeError) as exc:
            msg = f'Cannot read RO-Crate metadata "{path}": {exc}'
            raise ConversionError(msg) from exc
        return cls.from_dict(data)

    def _resolve(self, value):
        if is_reference(value) and len(value) == 1:
            return self.entities.get(value["@id"], value)
        return value

    def _link_entities(self) -> None:
        # Stubs to unknown ids (e.g. external classes) are kept as they are.
        for entity in self.entities.values():
            for name, value in entity.properties.items():
                if name in ("@id", "@type"):
                    continue
                if isinstance(value, list):
                    entity.set(name, [self._resolve(item) for item in value])
                else:
                    entity.set(name, self._resolve(value))

    @staticmethod
    def create_main_entity() -> Entity:
        entity = Entity("CreativeWork", METADATA_FILE_ID)
        entity.set("conformsTo", {"@id": CRATE_CONFORMS_TO})
        entity.set("about", {"@id": ROOT_ENTITY_ID})
        return entity

    @staticmethod
    def create_root_entity(name: str = "", description: str = "") -> Entity:
        entity = Entity("Dataset", ROOT_ENTITY_ID)
        if name:
            entity.set("name", name)
        if description:
            entity.set("description", description)
        return entity
