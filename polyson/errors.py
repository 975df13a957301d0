"""
Exception types raised by polyson.

Polymorphism errors derive from PolymorphismError and host errors from
ValueError directly. Both are ValueErrors, so callers that already guard JSON
decoding with ``except ValueError`` keep working.
Errors carry the values needed to diagnose them (declared type, property
name, raw discriminator value) as attributes as well as in the message.
"""

from __future__ import annotations

from typing import Any


def type_name(tp: Any) -> str:
    """Return a fully qualified, human readable name for a type."""
    module = getattr(tp, "__module__", None)
    qualname = getattr(tp, "__qualname__", None)
    if module and qualname:
        return f"{module}.{qualname}"
    return repr(tp)


class PolymorphismError(ValueError):
    """Base class for all polyson errors."""


class PolymorphismConfigurationError(PolymorphismError):
    """Raised when polymorphism metadata or strategies are declared inconsistently."""


class MissingContextError(PolymorphismError):
    """Raised when a converter is asked to read a type it has no context for."""

    def __init__(self, declared_type: Any):
        self.declared_type = declared_type
        super().__init__(
            f"No polymorphism context is registered for {type_name(declared_type)}. "
            f"The converter was invoked for a type it reported it cannot convert."
        )


class MissingDiscriminatorError(PolymorphismError):
    """Raised when the discriminator property is absent from the JSON object."""

    def __init__(self, declared_type: Any, property_name: str):
        self.declared_type = declared_type
        self.property_name = property_name
        super().__init__(
            f"Failed to deserialize object of type {type_name(declared_type)} because "
            f"the expected polymorphic property, {property_name}, was not found in the JSON document."
        )


class DiscriminatorTypeError(PolymorphismError):
    """Raised when the discriminator property holds something other than a string or number."""

    def __init__(self, declared_type: Any, property_name: str, token: Any):
        self.declared_type = declared_type
        self.property_name = property_name
        self.token = token
        super().__init__(
            f"Failed to deserialize object of type {type_name(declared_type)} because "
            f"the polymorphic property, {property_name}, holds a {token} value. "
            f"Expected a string or an integer."
        )


class ResolutionError(PolymorphismError):
    """Raised by a strategy when no concrete type is mapped for a discriminator value."""

    def __init__(self, abstract_type: Any, property_name: str, raw_value: Any):
        self.abstract_type = abstract_type
        self.property_name = property_name
        self.raw_value = raw_value
        super().__init__(
            f"No concrete type of {type_name(abstract_type)} is mapped for "
            f"discriminator value {raw_value!r} (property {property_name})."
        )


class UnresolvedTypeError(ResolutionError):
    """Raised by the converter when the strategy could not resolve a concrete type."""


class JsonReaderError(ValueError):
    """Raised when a JsonReader is used at a position that does not fit the request."""


class JsonWriterError(ValueError):
    """Raised when JsonWriter tokens are written out of order."""


class AmbiguousUnionError(ValueError):
    """Raised when a union value could be decoded by more than one member type."""

    def __init__(self, declared_type: Any, candidates: Any):
        self.declared_type = declared_type
        self.candidates = tuple(candidates)
        super().__init__(
            f"Cannot decode {declared_type!r}: the value fits "
            f"{', '.join(type_name(tp) for tp in self.candidates) or 'no member'} "
            f"and at least one of them is handled by a converter."
        )
