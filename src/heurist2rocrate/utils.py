import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)

PARENTHESES_PATTERN = re.compile(r"\([^)]+\)")
NON_ALPHANUMERIC_PATTERN = re.compile(r"[^A-Za-z0-9 ]")


class ConversionError(Exception):
    pass


class ConfigurationError(ConversionError):
    """The mapping configuration cannot be honoured."""


class EntityKind(str, Enum):
    """Kinds of Heurist entities that can be addressed by an engine key."""

    RECORD_TYPE = "record_type"
    BASE_FIELD = "base_field"
    FIELD = "field"
    TERM = "term"
    RECORD = "record"


# The single-letter prefixes keep ids of different kinds apart in shared maps.
KIND_PREFIXES = {
    EntityKind.RECORD_TYPE: "r",
    EntityKind.BASE_FIELD: "b",
    EntityKind.FIELD: "f",
    EntityKind.TERM: "t",
    EntityKind.RECORD: "c",
}


def _split_words(text: str) -> list[str]:
    text = PARENTHESES_PATTERN.sub("", text or "")
    return NON_ALPHANUMERIC_PATTERN.sub(" ", text).split()


def _upper_first(word: str) -> str:
    return word[:1].upper() + word[1:]


def create_class_name(text: str) -> str:
    """Convert a label to a PascalCase class name.

    Text in parentheses is dropped and every non-alphanumeric character
    separates words, e.g. "Place (historical) / site" -> "PlaceSite".
    """
    return "".join(_upper_first(word) for word in _split_words(text))


def create_property_name(text: str) -> str:
    """Convert a label to a camelCase property name.

    The first word is lower-cased completely, all following words get an
    upper-case first letter, e.g. "Date of Birth" -> "dateOfBirth".
    """
    words = _split_words(text)
    if not words:
        return ""
    return words[0].lower() + "".join(_upper_first(word) for word in words[1:])


def entity_identifier_from_id(kind: EntityKind | str, entity_id: str) -> str:
    """Create the engine key for a Heurist entity of the given kind."""
    try:
        prefix = KIND_PREFIXES[EntityKind(kind)]
    except ValueError as exc:
        msg = f'Invalid entity kind "{kind}" to create the identifier.'
        raise ValueError(msg) from exc
    return f"{prefix}{entity_id}"


def entity_identifier(entity) -> str:
    """Create the engine key for a Heurist entity (record type, field, ...)."""
    kind = getattr(entity, "KIND", None)
    if kind is None:
        msg = f"Invalid entity type {type(entity).__name__} to create the identifier."
        raise TypeError(msg)
    return entity_identifier_from_id(kind, entity.id)


def unique_everseen(items):
    """Return items in original order without duplicates."""
    seen = set()
    return [x for x in items if not (x in seen or seen.add(x))]
