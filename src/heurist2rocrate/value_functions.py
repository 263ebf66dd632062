"""Value functions that a configuration can attach to fields.

A value function replaces the type based conversion of a field value. It is
referenced from a configuration by name, e.g.

    {"@id": "#fn_text", "@type": "_ValueFunction", "name": "to_text"}
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from heurist2rocrate.heurist import GenericFieldValue
from heurist2rocrate.utils import ConfigurationError

logger = logging.getLogger(__name__)

_value_function_registry: dict[str, type["ValueFunction"]] = {}


def register_value_function(cls: type["ValueFunction"]) -> type["ValueFunction"]:
    """Decorator to make a value function available by its name."""
    _value_function_registry[cls.name] = cls
    logger.debug("Registered value function: %s", cls.__name__)
    return cls


def get_registered_value_functions() -> dict[str, type["ValueFunction"]]:
    return _value_function_registry.copy()


class ValueFunction(ABC):
    name: ClassVar[str]

    @abstractmethod
    def apply(self, field_value: GenericFieldValue) -> Any:
        """Return the value to emit for field_value."""


@register_value_function
class ToTextValueFunction(ValueFunction):
    """Emit the raw value as plain text."""

    name = "to_text"

    def apply(self, field_value: GenericFieldValue) -> str:
        return field_value.value


def create_value_function(definition) -> ValueFunction:
    """Create the value function for its definition entity from a configuration.

    Raises ConfigurationError if no value function with the name exists.
    """
    name = definition.get("name") if definition is not None else None
    try:
        cls = _value_function_registry[name]
    except KeyError:
        msg = f'Invalid value function "{name}".'
        raise ConfigurationError(msg) from None
    return cls()
