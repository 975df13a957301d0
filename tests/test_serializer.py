"""Tests for the JsonSerializer standard mapping, options and package-level API."""

import io
import json
from datetime import date
from enum import Enum
from typing import Any, Annotated, Optional, Union

import pytest
from pydantic import AfterValidator, BaseModel, Field, ValidationError

from polyson import (
    JsonConverter,
    JsonSerializer,
    PolymorphismJsonConverter,
    SerializerOptions,
    add_polymorphism,
    deserialize,
    serialize,
)

from helpers import AbstractItem, ChildA, ChildB, Circle, Point, Polyline, Shape


def roundtrip(value, declared_type=None, options=None):
    """Serialize and deserialize a value with a plain serializer."""
    serializer = JsonSerializer(options)
    return serializer.deserialize(serializer.serialize(value, declared_type), declared_type or type(value))


def non_negative(value):
    if value < 0:
        raise ValueError("must not be negative")
    return value


class Color(Enum):
    RED = "red"
    BLUE = "blue"


class Palette(BaseModel):
    primary: Color
    weights: dict[Color, float] = Field(default_factory=dict)
    released: Optional[date] = None
    extra: Any = None


class Aliased(BaseModel):
    value: int = Field(alias="Value_")
    other: int = 0


class Shouty:
    """Converter target outside pydantic."""

    def __init__(self, text):
        self.text = text


class ShoutyConverter(JsonConverter):
    def can_convert(self, type_to_convert):
        return type_to_convert is Shouty

    def read(self, reader, type_to_convert, serializer):
        return Shouty(reader.read_raw().lower())

    def write(self, writer, value, serializer):
        writer.write_value(value.text.upper())


# =============================================================================
# Leaves and Collections
# =============================================================================


class TestLeaves:
    """Test leaf coercion through pydantic."""

    @pytest.mark.parametrize("value", [0, -3, 2.5, "text", "", True, False])
    def test_scalars(self, value):
        assert roundtrip(value) == value

    def test_none(self):
        serializer = JsonSerializer()
        assert serializer.serialize(None) == "null"
        assert serializer.deserialize("null", Optional[int]) is None

    def test_coercion(self):
        serializer = JsonSerializer()
        assert serializer.deserialize('"2024-03-04"', date) == date(2024, 3, 4)
        assert serializer.deserialize('"red"', Color) is Color.RED

    def test_invalid_leaf(self):
        with pytest.raises(ValidationError):
            JsonSerializer().deserialize('"abc"', int)

    def test_any(self):
        assert JsonSerializer().deserialize('{"a": [1, {"b": null}]}', Any) == {"a": [1, {"b": None}]}


class TestCollections:
    """Test container mapping."""

    def test_list(self):
        assert roundtrip([1, 2, 3], list[int]) == [1, 2, 3]
        assert roundtrip([], list[int]) == []

    def test_tuple(self):
        result = roundtrip((1, "a"), tuple[int, str])
        assert result == (1, "a")
        assert isinstance(result, tuple)
        assert roundtrip((1, 2, 3), tuple[int, ...]) == (1, 2, 3)

    def test_sets(self):
        assert roundtrip({1, 2}, set[int]) == {1, 2}
        assert roundtrip(frozenset({"a"}), frozenset[str]) == frozenset({"a"})

    def test_dict(self):
        assert roundtrip({"a": 1, "b": 2}, dict[str, int]) == {"a": 1, "b": 2}

    def test_dict_with_enum_keys(self):
        palette = Palette(primary=Color.BLUE, weights={Color.RED: 0.5})
        text = JsonSerializer().serialize(palette)
        assert json.loads(text)["weights"] == {"red": 0.5}
        assert roundtrip(palette) == palette

    def test_untyped_containers(self):
        assert roundtrip([1, "a", None], list) == [1, "a", None]
        assert roundtrip({"k": [1]}, dict) == {"k": [1]}

    def test_union(self):
        serializer = JsonSerializer()
        assert serializer.deserialize('"x"', Union[int, str]) == "x"
        assert serializer.deserialize("3", Union[int, str]) == 3

    def test_union_object_goes_to_the_only_object_member(self):
        result = JsonSerializer().deserialize('{"x": 1, "y": 2}', Union[Point, int])
        assert result == Point(x=1, y=2)

    def test_annotated(self):
        tp = Annotated[int, AfterValidator(non_negative)]
        assert JsonSerializer().deserialize("5", tp) == 5
        with pytest.raises(ValidationError):
            JsonSerializer().deserialize("-1", tp)


# =============================================================================
# Models
# =============================================================================


class TestModels:
    """Test model field mapping."""

    def test_nested_model(self):
        line = Polyline(
            label="l",
            points=[Point(x=1, y=2), Point(x=3, y=4)],
            corners=(Point(x=0, y=0), Point(x=9, y=9)),
            tags={"a", "b"},
            metadata={"n": 1},
        )
        assert roundtrip(line) == line

    def test_unknown_properties_are_skipped(self):
        result = JsonSerializer().deserialize('{"x": 1, "z": {"deep": [1, 2]}, "y": 2}', Point)
        assert result == Point(x=1, y=2)

    def test_missing_required_field(self):
        with pytest.raises(ValidationError):
            JsonSerializer().deserialize('{"x": 1}', Point)

    def test_alias_beats_naming_policy(self):
        serializer = JsonSerializer(SerializerOptions(naming_policy="camel"))
        text = serializer.serialize(Aliased(Value_=1, other=2))

        assert json.loads(text) == {"Value_": 1, "other": 2}
        assert serializer.deserialize(text, Aliased) == Aliased(Value_=1, other=2)

    def test_case_insensitive_fields(self):
        options = SerializerOptions(property_name_case_insensitive=True)
        assert JsonSerializer(options).deserialize('{"X": 1, "Y": 2}', Point) == Point(x=1, y=2)
        with pytest.raises(ValidationError):
            JsonSerializer().deserialize('{"X": 1, "Y": 2}', Point)

    def test_declared_type_fields_are_written(self):
        text = JsonSerializer().serialize(ChildA(a=1), AbstractItem)
        assert json.loads(text) == {"abstract_type": 0, "a": 1, "b": []}

    def test_wrong_declared_model(self):
        with pytest.raises(TypeError):
            JsonSerializer().serialize(Point(x=1, y=2), Polyline)

    def test_null_model(self):
        assert JsonSerializer().deserialize("null", Point) is None

    def test_indented_output(self):
        text = JsonSerializer(SerializerOptions(write_indented=True)).serialize(Point(x=1, y=2))
        assert text == '{\n  "x": 1,\n  "y": 2\n}'

    def test_stream_io(self):
        serializer = JsonSerializer()
        buffer = io.StringIO()
        serializer.dump([Point(x=1, y=2)], buffer, list[Point])
        buffer.seek(0)
        assert serializer.load(buffer, list[Point]) == [Point(x=1, y=2)]
        assert serializer.load(io.BytesIO(b'{"x": 5, "y": 6}'), Point) == Point(x=5, y=6)

    def test_trailing_content(self):
        with pytest.raises(ValueError):
            JsonSerializer().deserialize('{"x": 1, "y": 2} 3', Point)


# =============================================================================
# Options and Converters
# =============================================================================


class TestOptions:
    """Test SerializerOptions."""

    def test_unknown_naming_policy(self):
        with pytest.raises(ValueError, match="kebab"):
            SerializerOptions(naming_policy="kebab")

    @pytest.mark.parametrize(
        "policy, expected",
        [(None, "abstract_type"), ("camel", "abstractType"), ("pascal", "AbstractType"), (str.upper, "ABSTRACT_TYPE")],
    )
    def test_get_json_name(self, policy, expected):
        assert SerializerOptions(naming_policy=policy).get_json_name(AbstractItem, "abstract_type") == expected

    def test_get_json_name_for_non_field(self):
        assert SerializerOptions(naming_policy="pascal").get_json_name(AbstractItem, "kind_tag") == "kind_tag"

    def test_name_key(self):
        assert SerializerOptions(property_name_case_insensitive=True).name_key("KIND") == "kind"
        assert SerializerOptions().name_key("KIND") == "KIND"

    def test_add_polymorphism_is_idempotent(self):
        options = SerializerOptions()
        add_polymorphism(options)
        add_polymorphism(options)
        assert sum(isinstance(c, PolymorphismJsonConverter) for c in options.converters) == 1


class TestCustomConverter:
    """Test that converters are consulted for every declared type."""

    def test_converter_at_any_depth(self):
        serializer = JsonSerializer(SerializerOptions(converters=[ShoutyConverter()]))
        text = serializer.serialize({"a": Shouty("hi")}, dict[str, Shouty])

        assert json.loads(text) == {"a": "HI"}
        assert serializer.deserialize(text, dict[str, Shouty])["a"].text == "hi"

    def test_first_matching_converter_wins(self):
        options = SerializerOptions(converters=[ShoutyConverter(), ShoutyConverter()])
        serializer = JsonSerializer(options)
        assert serializer.get_converter(Shouty) is options.converters[0]
        assert serializer.get_converter(int) is None


# =============================================================================
# Package API
# =============================================================================


class TestPackageApi:
    """Test the module-level serialize and deserialize."""

    def test_polymorphism_enabled_by_default(self):
        text = serialize([ChildB(a=2), ChildA(a=1)], list[AbstractItem])
        result = deserialize(text, list[AbstractItem])
        assert [type(item) for item in result] == [ChildB, ChildA]

    def test_options_are_extended(self):
        options = SerializerOptions(naming_policy="pascal")
        text = serialize(Circle(radius=1.0), Shape, options=options)

        assert json.loads(text) == {"Kind": "circle", "Radius": 1.0}
        assert deserialize(text, Shape, options=options) == Circle(radius=1.0)
        assert any(isinstance(c, PolymorphismJsonConverter) for c in options.converters)

    def test_bytes_input(self):
        assert type(deserialize(b'{"abstract_type": 1}', AbstractItem)) is ChildB
