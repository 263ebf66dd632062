import logging

from heurist2rocrate.heurist import RecordType
from heurist2rocrate.utils import (
    create_class_name,
    create_property_name,
    entity_identifier,
)

logger = logging.getLogger(__name__)

# Classes the converter emits itself; record types must not shadow them.
RESERVED_CLASS_NAMES = frozenset(
    {
        "CreativeWork",
        "Dataset",
        "File",
        "DefinedTerm",
        "DefinedTermSet",
        "GeoCoordinates",
        "GeoShape",
    }
)


class NameResolver:
    """Assign unique class and property names to Heurist entities.

    Record types are resolved to PascalCase class names, base fields and
    fields to camelCase property names. All names share one namespace so that
    every name handed out by a resolver is distinct. The first resolution of
    an entity is memoized.
    """

    def __init__(self):
        self._resolved: dict[str, str] = {}
        self._taken: set[str] = set()

    def __len__(self):
        return len(self._resolved)

    @property
    def resolved_names(self) -> dict[str, str]:
        return dict(self._resolved)

    def has_resolved(self, entity) -> bool:
        return entity_identifier(entity) in self._resolved

    def is_taken(self, name: str) -> bool:
        return name in self._taken

    @staticmethod
    def _synthesize(entity, text: str) -> str:
        if isinstance(entity, RecordType):
            return create_class_name(text)
        return create_property_name(text)

    def _is_available(self, entity, name: str) -> bool:
        if name in self._taken:
            return False
        return not (isinstance(entity, RecordType) and name in RESERVED_CLASS_NAMES)

    def resolve(self, entity, context_name: str = "") -> str:
        """Return the name of the entity, creating it on first use.

        On a conflict the name is created from "<context_name> <name>" and if
        this is still taken the smallest free number is appended. The
        context name is ignored once the entity has been resolved.
        """
        identifier = entity_identifier(entity)
        if identifier in self._resolved:
            return self._resolved[identifier]

        name = self._synthesize(entity, entity.name)
        if not self._is_available(entity, name):
            name = self._synthesize(entity, f"{context_name} {entity.name}")
        if not self._is_available(entity, name):
            delta = 1
            while not self._is_available(entity, f"{name}{delta}"):
                delta += 1
            name = f"{name}{delta}"

        logger.debug('Resolved name of %s to "%s".', identifier, name)
        self.add_entry_from_identifier(identifier, name)
        return name

    def add_entry_from_identifier(self, identifier: str, name: str) -> None:
        """Set the name for an engine key directly, e.g. from a configuration."""
        self._resolved[identifier] = name
        self._taken.add(name)

    def add_entry(self, entity, name: str) -> None:
        self.add_entry_from_identifier(entity_identifier(entity), name)

    def has_name_conflict(self, entity) -> bool:
        """True if the unresolved entity's plain name is already in use."""
        if self.has_resolved(entity):
            return False
        return self.is_taken(self._synthesize(entity, entity.name))
