"""
JSON serializer and converter dispatch.

JsonSerializer maps Python values to JSON and back through a JsonReader /
JsonWriter pair. For every declared type it first asks its converters
whether one of them handles the type; otherwise it applies the standard
mapping:

- pydantic models: one JSON property per field of the *declared* model,
  named by alias or naming policy, matched under the case policy when
  reading. Unknown properties are skipped. The collected values are
  validated with ``model_validate``.
- list, tuple, set, frozenset, dict and their typing generics.
- Optional / Union / Annotated. Union members handled by a converter are
  chosen by the shape of the value, never guessed.
- Everything else is a leaf, coerced and dumped by a pydantic TypeAdapter.

Converters implement JsonConverter and may call back into the serializer
(read_value / write_value to go through dispatch again, read_default /
write_default to bypass it).
"""

from __future__ import annotations

import collections.abc
import datetime
import decimal
import enum
import functools
import types
import typing
import uuid
from typing import IO, Any, Union

from pydantic import BaseModel, TypeAdapter

from polyson.errors import AmbiguousUnionError, JsonReaderError, type_name
from polyson.options import SerializerOptions
from polyson.reader import JsonReader, JsonTokenType
from polyson.writer import JsonWriter


# =============================================================================
# Converter Protocol
# =============================================================================


class JsonConverter:
    """
    Base class for converters plugged into SerializerOptions.converters.

    Subclasses must implement:
    - can_convert(): Whether the converter handles a declared type
    - read(): Decode the value at the reader's position
    - write(): Encode a value
    """

    def can_convert(self, type_to_convert: Any) -> bool:
        raise NotImplementedError

    def read(self, reader: JsonReader, type_to_convert: Any, serializer: "JsonSerializer") -> Any:
        raise NotImplementedError

    def write(self, writer: JsonWriter, value: Any, serializer: "JsonSerializer") -> None:
        raise NotImplementedError


# =============================================================================
# Type Helpers
# =============================================================================

_UNION_TYPES = (Union, types.UnionType)

_SEQUENCE_ORIGINS = (
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
    collections.abc.Collection,
)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

# Leaf types never decoded from a JSON object
_SCALAR_TYPES = (
    bool,
    int,
    float,
    str,
    bytes,
    decimal.Decimal,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
    enum.Enum,
)


@functools.lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def _is_model(tp: Any) -> bool:
    return typing.get_origin(tp) is None and isinstance(tp, type) and issubclass(tp, BaseModel)


def _is_dynamic(tp: Any) -> bool:
    return tp is None or tp is Any or tp is object


def _non_none_args(tp: Any) -> tuple[Any, ...]:
    return tuple(arg for arg in typing.get_args(tp) if arg is not type(None))


def _accepts_object(tp: Any) -> bool:
    """Whether a JSON object can decode as tp."""
    origin = typing.get_origin(tp)
    if origin is typing.Annotated:
        return _accepts_object(typing.get_args(tp)[0])
    if origin in _UNION_TYPES:
        return any(_accepts_object(arg) for arg in typing.get_args(tp))
    if origin is typing.Literal or origin is tuple or origin in _SEQUENCE_ORIGINS:
        return False
    if tp in (list, tuple, set, frozenset, type(None)):
        return False
    return not (origin is None and isinstance(tp, type) and issubclass(tp, _SCALAR_TYPES))


def _build_sequence(origin: Any, items: list) -> Any:
    if origin is tuple:
        return tuple(items)
    if origin in (set, collections.abc.Set, collections.abc.MutableSet):
        return set(items)
    if origin is frozenset:
        return frozenset(items)
    return items


# =============================================================================
# Serializer
# =============================================================================


class JsonSerializer:
    """
    Converts values to and from JSON text.

    Example:
        >>> options = add_polymorphism(SerializerOptions(naming_policy="pascal"))
        >>> serializer = JsonSerializer(options)
        >>> text = serializer.serialize([circle, square], list[Shape])
        >>> serializer.deserialize(text, list[Shape])
        [Circle(...), Square(...)]
    """

    def __init__(self, options: SerializerOptions | None = None):
        self.options = options or SerializerOptions()
        self._field_tables: dict[type, dict[str, tuple[str, Any]]] = {}

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def serialize(self, value: Any, declared_type: Any = None) -> str:
        """
        Serialize a value to JSON text.

        Args:
            value: The value to serialize.
            declared_type: The static type of value. Defaults to type(value).
                Models are written with the fields of the declared type unless
                a converter handles it.
        """
        writer = JsonWriter(indent=2 if self.options.write_indented else None)
        self.write_value(writer, value, declared_type)
        return writer.getvalue()

    def deserialize(self, data: str | bytes | bytearray, return_type: Any) -> Any:
        """Deserialize JSON text into an instance of return_type."""
        reader = JsonReader.from_json(data)
        result = self.read_value(reader, return_type)
        if reader.token_type is not JsonTokenType.NONE:
            raise JsonReaderError(f"Unexpected {reader.token_type.name} after the root value")
        return result

    def dump(self, value: Any, fp: IO[str], declared_type: Any = None) -> None:
        """Serialize a value and write it to a text stream."""
        fp.write(self.serialize(value, declared_type))

    def load(self, fp: IO, return_type: Any) -> Any:
        """Read a whole text or binary stream and deserialize it."""
        return self.deserialize(fp.read(), return_type)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def get_converter(self, tp: Any) -> JsonConverter | None:
        """Return the first converter that handles tp, if any."""
        for converter in self.options.converters:
            if converter.can_convert(tp):
                return converter
        return None

    def read_value(self, reader: JsonReader, tp: Any) -> Any:
        """Read the value at the reader's position as tp, consulting converters."""
        converter = self.get_converter(tp)
        if converter is None:
            return self.read_default(reader, tp)
        if reader.token_type is JsonTokenType.NULL:
            reader.read()
            return None
        return converter.read(reader, tp, self)

    def write_value(self, writer: JsonWriter, value: Any, declared_type: Any = None) -> None:
        """Write value as declared_type, consulting converters."""
        if declared_type is None:
            declared_type = type(value)
        if value is None:
            writer.write_null()
            return
        converter = self.get_converter(declared_type)
        if converter is None:
            self.write_default(writer, value, declared_type)
        else:
            converter.write(writer, value, self)

    # -------------------------------------------------------------------------
    # Standard mapping: reading
    # -------------------------------------------------------------------------

    def read_default(self, reader: JsonReader, tp: Any) -> Any:
        """Read the value at the reader's position as tp without converters."""
        reader.expect_value()

        if _is_dynamic(tp):
            return reader.read_raw()
        if _is_model(tp):
            return self._read_model(reader, tp)

        origin = typing.get_origin(tp)
        args = typing.get_args(tp)

        if origin is typing.Annotated:
            return _adapter(tp).validate_python(self.read_value(reader, args[0]))

        if origin in _UNION_TYPES:
            return self._read_union(reader, tp, args)

        if origin in _SEQUENCE_ORIGINS or origin is tuple:
            return self._read_sequence(reader, tp, origin, args)
        if tp in (list, tuple, set, frozenset):
            return self._read_sequence(reader, tp, tp, ())

        if origin in _MAPPING_ORIGINS:
            return self._read_mapping(reader, args)
        if tp is dict:
            return self._read_mapping(reader, ())

        return _adapter(tp).validate_python(reader.read_raw())

    def _read_union(self, reader: JsonReader, tp: Any, args: tuple[Any, ...]) -> Any:
        """
        Pick the union member the value at the reader decodes as.

        A JSON object goes to the only member that can take an object. Plain
        members are otherwise left to pydantic, but a member handled by a
        converter is never guessed: if it is one of several candidates the
        read fails with AmbiguousUnionError.
        """
        candidates = _non_none_args(tp)
        if reader.token_type is JsonTokenType.NULL and len(args) != len(candidates):
            reader.read()
            return None
        if len(candidates) == 1:
            return self.read_value(reader, candidates[0])

        converted = [member for member in candidates if self.get_converter(member) is not None]
        if reader.token_type is JsonTokenType.START_OBJECT:
            matches = [
                member for member in candidates
                if member in converted or _accepts_object(member)
            ]
            if len(matches) == 1:
                return self.read_value(reader, matches[0])
            if converted:
                raise AmbiguousUnionError(tp, matches)
        elif converted:
            plain = [member for member in candidates if member not in converted]
            if not plain:
                raise AmbiguousUnionError(tp, converted)
            if len(plain) == 1:
                return self.read_value(reader, plain[0])
            return _adapter(Union[tuple(plain)]).validate_python(reader.read_raw())
        return _adapter(tp).validate_python(reader.read_raw())

    def _read_sequence(self, reader: JsonReader, tp: Any, origin: Any, args: tuple[Any, ...]) -> Any:
        if reader.token_type is JsonTokenType.NULL:
            return _adapter(tp).validate_python(reader.read_raw())
        reader.expect(JsonTokenType.START_ARRAY)
        reader.read()

        items = []
        while reader.token_type is not JsonTokenType.END_ARRAY:
            if origin is tuple and args and args[-1] is not Ellipsis:
                item_type = args[len(items)] if len(items) < len(args) else Any
            else:
                item_type = args[0] if args else Any
            items.append(self.read_value(reader, item_type))
        reader.read()
        return _build_sequence(origin, items)

    def _read_mapping(self, reader: JsonReader, args: tuple[Any, ...]) -> dict:
        key_type, value_type = args if len(args) == 2 else (str, Any)
        if reader.token_type is JsonTokenType.NULL:
            return reader.read_raw()
        reader.expect(JsonTokenType.START_OBJECT)
        reader.read()

        result = {}
        while reader.token_type is JsonTokenType.PROPERTY_NAME:
            key = reader.value
            if key_type is not str and not _is_dynamic(key_type):
                key = _adapter(key_type).validate_python(key)
            reader.read()
            result[key] = self.read_value(reader, value_type)
        reader.expect(JsonTokenType.END_OBJECT)
        reader.read()
        return result

    def _field_table(self, model_type: type) -> dict[str, tuple[str, Any]]:
        """Map lookup keys of JSON property names to (validation key, annotation)."""
        table = self._field_tables.get(model_type)
        if table is None:
            table = {}
            for name, model_field in model_type.model_fields.items():
                json_name = self.options.get_json_name(model_type, name)
                table[self.options.name_key(json_name)] = (
                    model_field.alias or name,
                    model_field.annotation,
                )
            self._field_tables[model_type] = table
        return table

    def _read_model(self, reader: JsonReader, model_type: type) -> Any:
        if reader.token_type is JsonTokenType.NULL:
            reader.read()
            return None
        reader.expect(JsonTokenType.START_OBJECT)
        reader.read()

        table = self._field_table(model_type)
        values: dict[str, Any] = {}
        while reader.token_type is JsonTokenType.PROPERTY_NAME:
            entry = table.get(self.options.name_key(reader.value))
            reader.read()
            if entry is None:
                reader.skip()
                continue
            key, annotation = entry
            values[key] = self.read_value(reader, annotation)
        reader.expect(JsonTokenType.END_OBJECT)
        reader.read()
        return model_type.model_validate(values)

    # -------------------------------------------------------------------------
    # Standard mapping: writing
    # -------------------------------------------------------------------------

    def write_default(self, writer: JsonWriter, value: Any, declared_type: Any) -> None:
        """Write value as declared_type without converters."""
        if value is None:
            writer.write_null()
            return
        if _is_dynamic(declared_type):
            declared_type = type(value)

        if _is_model(declared_type):
            if not isinstance(value, declared_type):
                raise TypeError(
                    f"Cannot write {type(value).__name__} as {type_name(declared_type)}"
                )
            self._write_model(writer, value, declared_type)
            return

        origin = typing.get_origin(declared_type)
        args = typing.get_args(declared_type)

        if origin is typing.Annotated:
            self.write_value(writer, value, args[0])
            return

        if origin in _UNION_TYPES:
            candidates = _non_none_args(declared_type)
            self.write_value(writer, value, candidates[0] if len(candidates) == 1 else type(value))
            return

        if origin in _MAPPING_ORIGINS or declared_type is dict:
            self._write_mapping(writer, value, args)
            return

        if (
            origin in _SEQUENCE_ORIGINS
            or origin is tuple
            or declared_type in (list, tuple, set, frozenset)
        ):
            self._write_sequence(writer, value, origin or declared_type, args)
            return

        writer.write_value(_adapter(declared_type).dump_python(value, mode="json"))

    def _write_model(self, writer: JsonWriter, value: BaseModel, model_type: type) -> None:
        writer.write_start_object()
        for name, model_field in model_type.model_fields.items():
            if model_field.exclude:
                continue
            writer.write_property_name(self.options.get_json_name(model_type, name))
            self.write_value(writer, getattr(value, name), model_field.annotation)
        writer.write_end_object()

    def _write_sequence(self, writer: JsonWriter, value: Any, origin: Any, args: tuple[Any, ...]) -> None:
        writer.write_start_array()
        for index, item in enumerate(value):
            if origin is tuple and args and args[-1] is not Ellipsis:
                item_type = args[index] if index < len(args) else None
            else:
                item_type = args[0] if args else None
            self.write_value(writer, item, None if _is_dynamic(item_type) else item_type)
        writer.write_end_array()

    def _write_mapping(self, writer: JsonWriter, value: Any, args: tuple[Any, ...]) -> None:
        value_type = args[1] if len(args) == 2 else None
        writer.write_start_object()
        for key, item in value.items():
            if isinstance(key, enum.Enum):
                key = key.value
            writer.write_property_name(str(key))
            self.write_value(writer, item, None if _is_dynamic(value_type) else value_type)
        writer.write_end_object()
