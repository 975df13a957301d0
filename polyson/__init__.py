"""
polyson - polymorphic JSON deserialization for pydantic models.

A JSON document usually only tells the decoder the *declared* type of a
value. When that type is an abstract base with several concrete subclasses,
polyson reads a discriminator property from the object and decodes it as the
matching concrete class, using the same field mapping, naming policy and
case rules as the rest of the document.

Declaring a polymorphic hierarchy:
    >>> from enum import IntEnum
    >>> from pydantic import BaseModel
    >>> from polyson import polymorphic, discriminator
    >>>
    >>> class ShapeKind(IntEnum):
    ...     CIRCLE = 0
    ...     SQUARE = 1
    >>>
    >>> @polymorphic("kind")
    ... class Shape(BaseModel):
    ...     kind: ShapeKind
    >>>
    >>> @discriminator(ShapeKind.CIRCLE)
    ... class Circle(Shape):
    ...     kind: ShapeKind = ShapeKind.CIRCLE
    ...     radius: float

Basic Usage:
    >>> from polyson import serialize, deserialize
    >>>
    >>> text = serialize([Circle(radius=2.0)], list[Shape])
    >>> deserialize(text, list[Shape])
    [Circle(kind=<ShapeKind.CIRCLE: 0>, radius=2.0)]

Custom configuration:
    >>> from polyson import JsonSerializer, SerializerOptions, add_polymorphism
    >>>
    >>> options = SerializerOptions(
    ...     property_name_case_insensitive=True,
    ...     naming_policy="camel",
    ... )
    >>> serializer = JsonSerializer(add_polymorphism(options))

Explicit registration (no decorators):
    >>> from polyson import register_polymorphism
    >>> register_polymorphism(Shape, "kind", subtypes={ShapeKind.CIRCLE: Circle})

To add a discriminator strategy:
    >>> from polyson import DiscriminatorStrategy, default_strategies
    >>>
    >>> class PrefixStrategy(DiscriminatorStrategy):
    ...     def resolve(self, metadata, abstract_type, raw_value):
    ...         ...
    >>>
    >>> default_strategies.register("prefix", PrefixStrategy())
"""

from typing import Any

from polyson.context import (
    PolymorphismContext,
    PolymorphismContextProvider,
    default_provider,
)
from polyson.converter import PolymorphismJsonConverter
from polyson.errors import (
    AmbiguousUnionError,
    DiscriminatorTypeError,
    JsonReaderError,
    JsonWriterError,
    MissingContextError,
    MissingDiscriminatorError,
    PolymorphismConfigurationError,
    PolymorphismError,
    ResolutionError,
    UnresolvedTypeError,
)
from polyson.extensions import add_polymorphism
from polyson.metadata import (
    ENUM_STRATEGY,
    TAG_STRATEGY,
    MetadataResolver,
    PolymorphismMetadata,
    default_resolver,
    discriminator,
    polymorphic,
    register_polymorphism,
)
from polyson.options import NAMING_POLICIES, SerializerOptions
from polyson.reader import JsonReader, JsonTokenType
from polyson.serializer import JsonConverter, JsonSerializer
from polyson.strategies import (
    DiscriminatorStrategy,
    EnumDiscriminatorStrategy,
    StrategyRegistry,
    TagDiscriminatorStrategy,
    add_enum_discriminator_strategy,
    add_tag_discriminator_strategy,
    default_strategies,
)
from polyson.writer import JsonWriter


def _default_serializer(options: SerializerOptions | None) -> JsonSerializer:
    return JsonSerializer(add_polymorphism(options or SerializerOptions()))


def serialize(
    value: Any,
    declared_type: Any = None,
    *,
    options: SerializerOptions | None = None,
) -> str:
    """
    Serialize a value to JSON text.

    Polymorphism is enabled with the default provider unless the options
    already carry a polymorphism converter.

    Args:
        value: The value to serialize.
        declared_type: The static type of value, e.g. ``list[Shape]``.
            Defaults to type(value).
        options: Serializer options. A polymorphism converter is added to
            them if missing.

    Returns:
        The JSON text.

    Example:
        >>> serialize(Circle(radius=1.0), Shape)
        '{"kind":0,"radius":1.0}'
    """
    return _default_serializer(options).serialize(value, declared_type)


def deserialize(
    data: str | bytes | bytearray,
    return_type: Any,
    *,
    options: SerializerOptions | None = None,
) -> Any:
    """
    Deserialize JSON text into return_type.

    Args:
        data: JSON text.
        return_type: The declared type of the document, e.g. ``list[Shape]``.
        options: Serializer options. A polymorphism converter is added to
            them if missing.

    Returns:
        The decoded value. Polymorphic types decode as their concrete types.

    Raises:
        MissingDiscriminatorError: If a polymorphic object lacks its
            discriminator property.
        DiscriminatorTypeError: If the discriminator is not a string or number.
        UnresolvedTypeError: If no concrete type matches the discriminator.
        pydantic.ValidationError: If field values fail validation.

    Example:
        >>> deserialize('{"kind": 0, "radius": 1.0}', Shape)
        Circle(kind=<ShapeKind.CIRCLE: 0>, radius=1.0)
    """
    return _default_serializer(options).deserialize(data, return_type)


__all__ = [
    # Core API
    "serialize",
    "deserialize",
    "JsonSerializer",
    "SerializerOptions",
    "NAMING_POLICIES",
    "add_polymorphism",
    # Declaration
    "polymorphic",
    "discriminator",
    "register_polymorphism",
    "PolymorphismMetadata",
    "MetadataResolver",
    "default_resolver",
    "ENUM_STRATEGY",
    "TAG_STRATEGY",
    # Strategies
    "DiscriminatorStrategy",
    "EnumDiscriminatorStrategy",
    "TagDiscriminatorStrategy",
    "StrategyRegistry",
    "add_enum_discriminator_strategy",
    "add_tag_discriminator_strategy",
    "default_strategies",
    # Contexts
    "PolymorphismContext",
    "PolymorphismContextProvider",
    "default_provider",
    # Host
    "JsonConverter",
    "PolymorphismJsonConverter",
    "JsonReader",
    "JsonTokenType",
    "JsonWriter",
    # Errors
    "PolymorphismError",
    "PolymorphismConfigurationError",
    "MissingContextError",
    "MissingDiscriminatorError",
    "DiscriminatorTypeError",
    "ResolutionError",
    "UnresolvedTypeError",
    "JsonReaderError",
    "JsonWriterError",
    "AmbiguousUnionError",
]
