"""
Discriminator strategies.

A strategy turns the raw discriminator value read from a document (an int or
a str) into the concrete type to decode. Strategies are stateless: everything
they need arrives through the PolymorphismMetadata, so one instance is shared
by every context using its kind.

Built-in strategies:
- EnumDiscriminatorStrategy ("enum"): keys are enum members. Integers match a
  member's value, strings match a member's name (or value for string enums).
- TagDiscriminatorStrategy ("tag"): keys are the raw literals themselves.

Custom strategies subclass DiscriminatorStrategy and are registered on a
StrategyRegistry under a new kind:

    >>> class VersionStrategy(DiscriminatorStrategy):
    ...     def resolve(self, metadata, abstract_type, raw_value):
    ...         ...
    >>> default_strategies.register("version", VersionStrategy())
"""

from __future__ import annotations

import enum
import threading

from polyson.errors import PolymorphismConfigurationError, ResolutionError, type_name
from polyson.metadata import ENUM_STRATEGY, TAG_STRATEGY, PolymorphismMetadata

# Discriminator values extracted from a document
RawDiscriminator = int | str


# =============================================================================
# Base Class
# =============================================================================


class DiscriminatorStrategy:
    """Abstract base class for discriminator strategies."""

    def resolve(
        self,
        metadata: PolymorphismMetadata,
        abstract_type: type,
        raw_value: RawDiscriminator,
    ) -> type:
        """
        Return the concrete type for a raw discriminator value.

        Raises:
            ResolutionError: If no concrete type is mapped for raw_value.
        """
        raise NotImplementedError


# =============================================================================
# Enum Strategy
# =============================================================================


class EnumDiscriminatorStrategy(DiscriminatorStrategy):
    """
    Resolves discriminators against a table keyed by enum members.

    An int matches the member whose value equals it. A str matches the member
    of that name first and, failing that, a member whose value equals it.
    Booleans never match.
    """

    def resolve(self, metadata, abstract_type, raw_value):
        for member, concrete_type in metadata.subtypes.items():
            if not isinstance(member, enum.Enum):
                raise PolymorphismConfigurationError(
                    f"The enum discriminator table of {type_name(abstract_type)} "
                    f"contains {member!r}, which is not an enum member."
                )
            if self._matches(member, raw_value):
                return concrete_type
        raise ResolutionError(abstract_type, metadata.property_name, raw_value)

    @staticmethod
    def _matches(member: enum.Enum, raw_value: RawDiscriminator) -> bool:
        if isinstance(raw_value, bool):
            return False
        if isinstance(raw_value, int):
            return (
                isinstance(member.value, int)
                and not isinstance(member.value, bool)
                and member.value == raw_value
            )
        if isinstance(raw_value, str):
            if member.name == raw_value:
                return True
            return isinstance(member.value, str) and member.value == raw_value
        return False


# =============================================================================
# Tag Strategy
# =============================================================================


class TagDiscriminatorStrategy(DiscriminatorStrategy):
    """Resolves discriminators against a table keyed by the raw literal values."""

    def resolve(self, metadata, abstract_type, raw_value):
        if not isinstance(raw_value, bool):
            for key, concrete_type in metadata.subtypes.items():
                # 1 == True in Python, keep booleans out of int matches
                if type(key) is type(raw_value) and key == raw_value:
                    return concrete_type
        raise ResolutionError(abstract_type, metadata.property_name, raw_value)


# =============================================================================
# Registry
# =============================================================================


class StrategyRegistry:
    """Maps strategy kinds to shared strategy instances."""

    def __init__(self, strategies: dict[str, DiscriminatorStrategy] | None = None):
        self._strategies: dict[str, DiscriminatorStrategy] = dict(strategies or {})
        self._lock = threading.Lock()

    def register(self, kind: str, strategy: DiscriminatorStrategy) -> None:
        """
        Register a strategy for a kind.

        Registering another instance of the same strategy class for a kind is
        a no-op, so repeated startup registration is safe.

        Raises:
            PolymorphismConfigurationError: If the kind is already backed by a
                strategy of a different class.
        """
        with self._lock:
            existing = self._strategies.get(kind)
            if existing is not None:
                if type(existing) is not type(strategy):
                    raise PolymorphismConfigurationError(
                        f"Strategy kind {kind!r} is already backed by "
                        f"{type(existing).__name__}."
                    )
                return
            self._strategies[kind] = strategy

    def get(self, kind: str) -> DiscriminatorStrategy:
        """
        Return the strategy registered for a kind.

        Raises:
            PolymorphismConfigurationError: If no strategy is registered.
        """
        strategy = self._strategies.get(kind)
        if strategy is None:
            raise PolymorphismConfigurationError(
                f"No discriminator strategy is registered for kind {kind!r}. "
                f"Available kinds: {sorted(self._strategies)}"
            )
        return strategy

    def __contains__(self, kind: str) -> bool:
        return kind in self._strategies


def add_enum_discriminator_strategy(registry: StrategyRegistry) -> StrategyRegistry:
    """Register the enum strategy on a registry."""
    registry.register(ENUM_STRATEGY, EnumDiscriminatorStrategy())
    return registry


def add_tag_discriminator_strategy(registry: StrategyRegistry) -> StrategyRegistry:
    """Register the tag strategy on a registry."""
    registry.register(TAG_STRATEGY, TagDiscriminatorStrategy())
    return registry


default_strategies = add_tag_discriminator_strategy(
    add_enum_discriminator_strategy(StrategyRegistry())
)
