"""
Wiring helpers for SerializerOptions.

    >>> options = add_polymorphism(SerializerOptions(naming_policy="camel"))
    >>> serializer = JsonSerializer(options)
"""

from __future__ import annotations

from polyson.context import PolymorphismContextProvider, default_provider
from polyson.converter import PolymorphismJsonConverter
from polyson.options import SerializerOptions


def add_polymorphism(
    options: SerializerOptions,
    provider: PolymorphismContextProvider | None = None,
) -> SerializerOptions:
    """
    Add a PolymorphismJsonConverter to the options' converters.

    Calling it again for options that already hold a polymorphism converter
    is a no-op.

    Args:
        options: The options to extend, modified in place.
        provider: Provider backing the converter. Defaults to the process-wide
            default_provider().

    Returns:
        The same options, for chaining.
    """
    if not any(isinstance(c, PolymorphismJsonConverter) for c in options.converters):
        options.converters.append(PolymorphismJsonConverter(provider or default_provider()))
    return options
