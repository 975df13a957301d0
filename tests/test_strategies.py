"""Tests for the discriminator strategies and their registry."""

import enum

import pytest

from polyson import (
    ENUM_STRATEGY,
    TAG_STRATEGY,
    DiscriminatorStrategy,
    EnumDiscriminatorStrategy,
    PolymorphismConfigurationError,
    PolymorphismMetadata,
    ResolutionError,
    StrategyRegistry,
    TagDiscriminatorStrategy,
    add_enum_discriminator_strategy,
    add_tag_discriminator_strategy,
    default_strategies,
)

from helpers import AbstractItem, AbstractType, ChildA, ChildB, Circle, Shape, ShapeKind, Square


class Color(enum.Enum):
    RED = 1
    GREEN = 2


def enum_metadata():
    return PolymorphismMetadata(
        AbstractItem,
        "abstract_type",
        ENUM_STRATEGY,
        {AbstractType.CHILD_A: ChildA, AbstractType.CHILD_B: ChildB},
    )


class TestEnumStrategy:
    """Test EnumDiscriminatorStrategy.resolve."""

    def test_int_matches_member_value(self):
        strategy = EnumDiscriminatorStrategy()
        assert strategy.resolve(enum_metadata(), AbstractItem, 0) is ChildA
        assert strategy.resolve(enum_metadata(), AbstractItem, 1) is ChildB

    def test_str_matches_member_name(self):
        strategy = EnumDiscriminatorStrategy()
        assert strategy.resolve(enum_metadata(), AbstractItem, "CHILD_A") is ChildA
        assert strategy.resolve(enum_metadata(), AbstractItem, "CHILD_B") is ChildB

    def test_str_matches_string_enum_value(self):
        metadata = PolymorphismMetadata(
            Shape, "kind", ENUM_STRATEGY,
            {ShapeKind.CIRCLE: Circle, ShapeKind.SQUARE: Square},
        )
        strategy = EnumDiscriminatorStrategy()
        assert strategy.resolve(metadata, Shape, "circle") is Circle
        assert strategy.resolve(metadata, Shape, "SQUARE") is Square

    def test_str_does_not_match_int_value(self):
        with pytest.raises(ResolutionError):
            EnumDiscriminatorStrategy().resolve(enum_metadata(), AbstractItem, "0")

    def test_plain_enum_with_int_values(self):
        metadata = PolymorphismMetadata(AbstractItem, "abstract_type", ENUM_STRATEGY, {Color.GREEN: ChildB})
        assert EnumDiscriminatorStrategy().resolve(metadata, AbstractItem, 2) is ChildB

    def test_unmapped_value(self):
        with pytest.raises(ResolutionError) as excinfo:
            EnumDiscriminatorStrategy().resolve(enum_metadata(), AbstractItem, 7)

        assert excinfo.value.raw_value == 7
        assert excinfo.value.abstract_type is AbstractItem
        assert excinfo.value.property_name == "abstract_type"
        assert "7" in str(excinfo.value)

    def test_unknown_name(self):
        with pytest.raises(ResolutionError):
            EnumDiscriminatorStrategy().resolve(enum_metadata(), AbstractItem, "child_a")

    def test_bool_never_matches(self):
        with pytest.raises(ResolutionError):
            EnumDiscriminatorStrategy().resolve(enum_metadata(), AbstractItem, True)

    def test_non_enum_key_is_a_configuration_error(self):
        metadata = PolymorphismMetadata(AbstractItem, "abstract_type", ENUM_STRATEGY, {0: ChildA})
        with pytest.raises(PolymorphismConfigurationError):
            EnumDiscriminatorStrategy().resolve(metadata, AbstractItem, 0)


class TestTagStrategy:
    """Test TagDiscriminatorStrategy.resolve."""

    def test_literal_match(self):
        metadata = PolymorphismMetadata(AbstractItem, "a", TAG_STRATEGY, {"x": ChildA, 3: ChildB})
        strategy = TagDiscriminatorStrategy()
        assert strategy.resolve(metadata, AbstractItem, "x") is ChildA
        assert strategy.resolve(metadata, AbstractItem, 3) is ChildB

    def test_types_must_match(self):
        metadata = PolymorphismMetadata(AbstractItem, "a", TAG_STRATEGY, {1: ChildA})
        strategy = TagDiscriminatorStrategy()
        with pytest.raises(ResolutionError):
            strategy.resolve(metadata, AbstractItem, "1")
        with pytest.raises(ResolutionError):
            strategy.resolve(metadata, AbstractItem, True)


class TestStrategyRegistry:
    """Test StrategyRegistry registration and lookup."""

    def test_default_strategies(self):
        assert isinstance(default_strategies.get(ENUM_STRATEGY), EnumDiscriminatorStrategy)
        assert isinstance(default_strategies.get(TAG_STRATEGY), TagDiscriminatorStrategy)

    def test_unknown_kind(self):
        with pytest.raises(PolymorphismConfigurationError, match="version"):
            StrategyRegistry().get("version")

    def test_add_helpers_are_idempotent(self):
        registry = add_enum_discriminator_strategy(StrategyRegistry())
        strategy = registry.get(ENUM_STRATEGY)
        add_enum_discriminator_strategy(registry)
        assert registry.get(ENUM_STRATEGY) is strategy
        assert TAG_STRATEGY not in registry
        add_tag_discriminator_strategy(registry)
        assert TAG_STRATEGY in registry

    def test_conflicting_strategy_class(self):
        registry = add_enum_discriminator_strategy(StrategyRegistry())
        with pytest.raises(PolymorphismConfigurationError):
            registry.register(ENUM_STRATEGY, TagDiscriminatorStrategy())

    def test_custom_strategy(self):
        class FirstLetterStrategy(DiscriminatorStrategy):
            def resolve(self, metadata, abstract_type, raw_value):
                return metadata.subtypes[raw_value[0]]

        registry = StrategyRegistry()
        registry.register("first_letter", FirstLetterStrategy())
        metadata = PolymorphismMetadata(AbstractItem, "a", "first_letter", {"a": ChildA})
        assert registry.get("first_letter").resolve(metadata, AbstractItem, "apple") is ChildA

    def test_base_strategy_is_abstract(self):
        with pytest.raises(NotImplementedError):
            DiscriminatorStrategy().resolve(enum_metadata(), AbstractItem, 0)
