"""
Polymorphism contexts and the provider caching them.

A PolymorphismContext binds one abstract type to its metadata and strategy.
The PolymorphismContextProvider builds contexts on first use and keeps them
for its own lifetime; build one provider at startup and share it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from polyson.errors import type_name
from polyson.metadata import MetadataResolver, PolymorphismMetadata, default_resolver
from polyson.strategies import (
    DiscriminatorStrategy,
    RawDiscriminator,
    StrategyRegistry,
    default_strategies,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolymorphismContext:
    """
    Resolved polymorphism plan for one abstract type.

    The metadata is a frozen copy taken when the context is built, so later
    registrations on the abstract type do not change a cached context.
    """

    metadata: PolymorphismMetadata
    abstract_type: type
    strategy: DiscriminatorStrategy

    @property
    def property_name(self) -> str:
        return self.metadata.property_name

    def get_concrete_type(self, raw_value: RawDiscriminator) -> type:
        """
        Resolve the concrete type for a raw discriminator value.

        Raises:
            ResolutionError: If the strategy has no mapping for raw_value.
        """
        return self.strategy.resolve(self.metadata, self.abstract_type, raw_value)


class PolymorphismContextProvider:
    """
    Answers whether a type is polymorphic and hands out its context.

    Contexts are created lazily and cached per type. Concurrent first access
    for the same type is serialized by a lock so every caller observes the
    same context instance.

    Example:
        >>> provider = PolymorphismContextProvider()
        >>> provider.has_strategy(Shape)
        True
        >>> provider.get_context(Shape).get_concrete_type("CIRCLE")
        <class 'Circle'>
    """

    def __init__(
        self,
        resolver: MetadataResolver | None = None,
        strategies: StrategyRegistry | None = None,
    ):
        self._resolver = resolver or default_resolver
        self._strategies = strategies or default_strategies
        self._contexts: dict[Any, PolymorphismContext] = {}
        self._lock = threading.Lock()

    def has_strategy(self, tp: Any) -> bool:
        """Return True if tp declares polymorphism metadata. Does not touch the cache."""
        return self._resolver.get_metadata(tp) is not None

    def get_context(self, tp: Any) -> PolymorphismContext | None:
        """
        Return the cached context for tp, building it on first access.

        Returns:
            The context, or None if tp is not polymorphic.

        Raises:
            PolymorphismConfigurationError: If the metadata names a strategy
                kind that is not registered.
        """
        context = self._contexts.get(tp)
        if context is not None:
            return context

        with self._lock:
            context = self._contexts.get(tp)
            if context is not None:
                return context

            metadata = self._resolver.get_metadata(tp)
            if metadata is None:
                return None

            context = PolymorphismContext(
                metadata=metadata.frozen(),
                abstract_type=tp,
                strategy=self._strategies.get(metadata.strategy),
            )
            self._contexts[tp] = context

        logger.debug(
            "Created polymorphism context for %s (property %r, strategy %r)",
            type_name(tp), metadata.property_name, metadata.strategy,
        )
        return context


_default_provider: PolymorphismContextProvider | None = None
_default_provider_lock = threading.Lock()


def default_provider() -> PolymorphismContextProvider:
    """Return the process-wide provider backed by the default resolver and strategies."""
    global _default_provider
    if _default_provider is None:
        with _default_provider_lock:
            if _default_provider is None:
                _default_provider = PolymorphismContextProvider()
    return _default_provider
