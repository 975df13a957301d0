"""
Discriminator metadata and its lookup.

An abstract type becomes polymorphic by carrying a PolymorphismMetadata,
declared either with the ``@polymorphic`` class decorator or by explicit
registration on a MetadataResolver:

    >>> @polymorphic("kind")
    ... class Shape(BaseModel):
    ...     kind: ShapeKind
    ...
    >>> @discriminator(ShapeKind.CIRCLE)
    ... class Circle(Shape):
    ...     kind: ShapeKind = ShapeKind.CIRCLE
    ...     radius: float

    >>> default_resolver.register(Shape, "kind", subtypes={ShapeKind.CIRCLE: Circle})

Only the declaring type itself is polymorphic. Subclasses of a polymorphic
base are concrete types and decode with the standard field mapping.
"""

from __future__ import annotations

import inspect
import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Mapping

from polyson.errors import PolymorphismConfigurationError, type_name


# Strategy kinds understood by the built-in strategies
ENUM_STRATEGY = "enum"
TAG_STRATEGY = "tag"

# Class attribute holding a decorator-declared metadata
METADATA_ATTRIBUTE = "__polymorphism__"


# =============================================================================
# Metadata
# =============================================================================


@dataclass(frozen=True)
class PolymorphismMetadata:
    """
    Declaration of how an abstract type is discriminated.

    Attributes:
        abstract_type: The base type the declaration belongs to.
        property_name: Name of the model field carrying the discriminator.
            When it names a field of the abstract model, the JSON property is
            derived the same way the serializer derives every other property
            name (alias, then naming policy). Otherwise it is used verbatim.
        strategy: Kind of the strategy interpreting the discriminator value.
        subtypes: Table of discriminator keys to concrete types. Keys are
            enum members for the enum strategy and raw literals for the tag
            strategy.
    """

    abstract_type: type
    property_name: str
    strategy: str = ENUM_STRATEGY
    subtypes: Mapping[Any, type] = field(default_factory=dict)

    def __post_init__(self):
        for concrete_type in self.subtypes.values():
            self._check_subtype(concrete_type)

    def _check_subtype(self, concrete_type: Any) -> None:
        if not (
            inspect.isclass(concrete_type)
            and inspect.isclass(self.abstract_type)
            and issubclass(concrete_type, self.abstract_type)
        ):
            raise PolymorphismConfigurationError(
                f"{type_name(concrete_type)} cannot be a concrete type of "
                f"{type_name(self.abstract_type)} because it is not a subclass of it."
            )

    def register_subtype(self, key: Any, concrete_type: type) -> None:
        """
        Map a discriminator key to a concrete type.

        Re-registering the same pair is a no-op. Only the declaration held by
        the abstract type accepts new keys; contexts work on a frozen copy
        taken when they are built.

        Raises:
            PolymorphismConfigurationError: If the key is already mapped to a
                different type, concrete_type is not a subclass of the
                abstract type, or the table is frozen.
        """
        self._check_subtype(concrete_type)
        if isinstance(self.subtypes, MappingProxyType):
            raise PolymorphismConfigurationError(
                f"The discriminator table of {type_name(self.abstract_type)} is frozen."
            )
        existing = self.subtypes.get(key)
        if existing is not None and existing is not concrete_type:
            raise PolymorphismConfigurationError(
                f"Discriminator {key!r} of {type_name(self.abstract_type)} is already "
                f"mapped to {type_name(existing)}; cannot map it to {type_name(concrete_type)}."
            )
        self.subtypes[key] = concrete_type

    def frozen(self) -> "PolymorphismMetadata":
        """Return a copy whose discriminator table can no longer change."""
        if isinstance(self.subtypes, MappingProxyType):
            return self
        return replace(self, subtypes=MappingProxyType(dict(self.subtypes)))


# =============================================================================
# Declarative registration
# =============================================================================


def polymorphic(
    property_name: str,
    *,
    strategy: str = ENUM_STRATEGY,
    subtypes: Mapping[Any, type] | None = None,
) -> Callable[[type], type]:
    """
    Class decorator declaring a type as a polymorphic abstract type.

    Args:
        property_name: Field carrying the discriminator.
        strategy: Strategy kind (``"enum"`` or ``"tag"`` out of the box).
        subtypes: Optional initial discriminator table. Concrete types
            can also join later with ``@discriminator``.
    """

    def decorator(cls: type) -> type:
        metadata = PolymorphismMetadata(
            abstract_type=cls,
            property_name=property_name,
            strategy=strategy,
            subtypes=dict(subtypes or {}),
        )
        setattr(cls, METADATA_ATTRIBUTE, metadata)
        return cls

    return decorator


def discriminator(key: Any) -> Callable[[type], type]:
    """
    Class decorator mapping a discriminator key to the decorated concrete type.

    The nearest base class declared with ``@polymorphic`` receives the
    mapping.

    Raises:
        PolymorphismConfigurationError: If no base class is polymorphic.
    """

    def decorator(cls: type) -> type:
        for base in cls.__mro__[1:]:
            metadata = base.__dict__.get(METADATA_ATTRIBUTE)
            if isinstance(metadata, PolymorphismMetadata):
                metadata.register_subtype(key, cls)
                return cls
        raise PolymorphismConfigurationError(
            f"{type_name(cls)} has no base class declared with @polymorphic."
        )

    return decorator


# =============================================================================
# Resolver
# =============================================================================


class MetadataResolver:
    """
    Looks up the PolymorphismMetadata of a type.

    Explicit registrations take precedence over ``@polymorphic`` declarations.
    Lookups never raise: a type without metadata simply is not polymorphic.
    """

    def __init__(self):
        self._registered: dict[type, PolymorphismMetadata] = {}
        self._lock = threading.Lock()

    def register(
        self,
        abstract_type: type,
        property_name: str,
        *,
        strategy: str = ENUM_STRATEGY,
        subtypes: Mapping[Any, type] | None = None,
    ) -> PolymorphismMetadata:
        """
        Register an abstract type explicitly.

        Registering the same declaration twice returns the first metadata.

        Raises:
            PolymorphismConfigurationError: If the type is already registered
                with a different property, strategy or discriminator table.
        """
        metadata = PolymorphismMetadata(
            abstract_type=abstract_type,
            property_name=property_name,
            strategy=strategy,
            subtypes=dict(subtypes or {}),
        )
        with self._lock:
            existing = self._registered.get(abstract_type)
            if existing is not None:
                if existing != metadata:
                    raise PolymorphismConfigurationError(
                        f"{type_name(abstract_type)} is already registered with property "
                        f"{existing.property_name!r} and strategy {existing.strategy!r}."
                    )
                return existing
            self._registered[abstract_type] = metadata
        return metadata

    def get_metadata(self, tp: Any) -> PolymorphismMetadata | None:
        """Return the metadata declared for exactly ``tp``, or None."""
        if not inspect.isclass(tp):
            return None
        metadata = self._registered.get(tp)
        if metadata is not None:
            return metadata
        declared = tp.__dict__.get(METADATA_ATTRIBUTE)
        if isinstance(declared, PolymorphismMetadata) and declared.abstract_type is tp:
            return declared
        return None


default_resolver = MetadataResolver()


def register_polymorphism(
    abstract_type: type,
    property_name: str,
    *,
    strategy: str = ENUM_STRATEGY,
    subtypes: Mapping[Any, type] | None = None,
) -> PolymorphismMetadata:
    """Register an abstract type on the default resolver."""
    return default_resolver.register(
        abstract_type, property_name, strategy=strategy, subtypes=subtypes
    )
