"""
Polymorphic dispatch converter.

PolymorphismJsonConverter plugs into SerializerOptions.converters. When the
serializer meets a declared type with polymorphism metadata, the converter:

1. Looks up the type's PolymorphismContext.
2. Finds the discriminator property in the current JSON object with a copy
   of the reader, under the serializer's naming and case policies.
3. Resolves the concrete type from the discriminator value.
4. Hands the untouched reader back to the serializer to decode the object as
   the concrete type.

Writing needs no discriminator handling: the value is written with the
fields of its runtime type, which already include the discriminator.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from polyson.context import PolymorphismContext, PolymorphismContextProvider
from polyson.errors import (
    DiscriminatorTypeError,
    MissingContextError,
    MissingDiscriminatorError,
    PolymorphismConfigurationError,
    ResolutionError,
    UnresolvedTypeError,
    type_name,
)
from polyson.options import SerializerOptions
from polyson.reader import JsonReader, JsonTokenType
from polyson.serializer import JsonConverter, JsonSerializer
from polyson.strategies import RawDiscriminator
from polyson.writer import JsonWriter

logger = logging.getLogger(__name__)


class PolymorphismJsonConverter(JsonConverter):
    """Converter decoding polymorphic abstract types into their concrete types."""

    def __init__(self, provider: PolymorphismContextProvider):
        if provider is None:
            raise TypeError("PolymorphismJsonConverter requires a PolymorphismContextProvider")
        self._provider = provider

    def can_convert(self, type_to_convert: Any) -> bool:
        return self._provider.has_strategy(type_to_convert)

    def read(self, reader: JsonReader, type_to_convert: Any, serializer: JsonSerializer) -> Any:
        context = self._provider.get_context(type_to_convert)
        if context is None:
            raise MissingContextError(type_to_convert)

        raw_value = self._get_discriminator_value(reader, context, serializer.options)
        try:
            concrete_type = context.get_concrete_type(raw_value)
        except UnresolvedTypeError:
            raise
        except ResolutionError as exc:
            raise UnresolvedTypeError(exc.abstract_type, exc.property_name, exc.raw_value) from exc

        if not (inspect.isclass(concrete_type) and issubclass(concrete_type, type_to_convert)):
            raise PolymorphismConfigurationError(
                f"Discriminator {raw_value!r} of {type_name(type_to_convert)} resolved to "
                f"{type_name(concrete_type)}, which is not a subclass of it."
            )

        logger.debug(
            "Resolved %s discriminator %r to %s",
            type_name(type_to_convert), raw_value, type_name(concrete_type),
        )
        if concrete_type is type_to_convert:
            return serializer.read_default(reader, concrete_type)
        return serializer.read_value(reader, concrete_type)

    def write(self, writer: JsonWriter, value: Any, serializer: JsonSerializer) -> None:
        runtime_type = type(value)
        if self.can_convert(runtime_type):
            serializer.write_default(writer, value, runtime_type)
        else:
            serializer.write_value(writer, value, runtime_type)

    def _get_discriminator_value(
        self,
        reader: JsonReader,
        context: PolymorphismContext,
        options: SerializerOptions,
    ) -> RawDiscriminator:
        """Read the discriminator of the object at the reader's position without moving it."""
        abstract_type = context.abstract_type
        property_name = options.get_json_name(abstract_type, context.property_name)

        property_reader = None
        if reader.token_type is JsonTokenType.START_OBJECT:
            property_reader = reader.try_find_property_value(property_name, key=options.name_key)
        if property_reader is None:
            raise MissingDiscriminatorError(abstract_type, property_name)

        token = property_reader.token_type
        value = property_reader.value
        if token is JsonTokenType.STRING:
            return value
        if token is JsonTokenType.NUMBER:
            if isinstance(value, float):
                if not value.is_integer():
                    raise DiscriminatorTypeError(abstract_type, property_name, "non-integral number")
                return int(value)
            return value
        raise DiscriminatorTypeError(abstract_type, property_name, token.value)
