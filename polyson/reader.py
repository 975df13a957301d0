"""
Forward-only JSON token cursor.

The document is parsed once with pydantic_core and flattened into an
immutable token table. A JsonReader is a position in that table, so copying a
reader is cheap and a copy can scan ahead (for example to find a
discriminator property) without moving the original.

Position convention: a reader positioned on the first token of a value
(START_OBJECT, START_ARRAY or a scalar) reads that value; after skip() or
read_raw() it sits on the token following the value.
"""

from __future__ import annotations

import enum
from typing import Any, Callable

import pydantic_core

from polyson.errors import JsonReaderError


class JsonTokenType(enum.Enum):
    NONE = "none"
    START_OBJECT = "start_object"
    END_OBJECT = "end_object"
    START_ARRAY = "start_array"
    END_ARRAY = "end_array"
    PROPERTY_NAME = "property_name"
    STRING = "string"
    NUMBER = "number"
    TRUE = "true"
    FALSE = "false"
    NULL = "null"


Token = tuple[JsonTokenType, Any]

_START_TOKENS = (JsonTokenType.START_OBJECT, JsonTokenType.START_ARRAY)


def _scalar_token(value: Any) -> Token:
    if value is None:
        return (JsonTokenType.NULL, None)
    if value is True:
        return (JsonTokenType.TRUE, True)
    if value is False:
        return (JsonTokenType.FALSE, False)
    if isinstance(value, str):
        return (JsonTokenType.STRING, value)
    if isinstance(value, (int, float)):
        return (JsonTokenType.NUMBER, value)
    raise JsonReaderError(f"Cannot tokenize value of type {type(value).__name__}")


def tokenize(document: Any) -> tuple[tuple[Token, ...], dict[int, int]]:
    """
    Flatten a parsed JSON document into tokens.

    Returns:
        The token tuple and a table mapping the index of every START token
        to the index of its matching END token.
    """
    tokens: list[Token] = []
    ends: dict[int, int] = {}

    # Iterative walk; deeply nested documents must not hit the recursion limit
    stack: list[tuple[str, Any]] = [("value", document)]
    while stack:
        action, item = stack.pop()
        if action == "end":
            start, token_type = item
            ends[start] = len(tokens)
            tokens.append((token_type, None))
        elif action == "name":
            tokens.append((JsonTokenType.PROPERTY_NAME, item))
        elif isinstance(item, dict):
            ends_marker = ("end", (len(tokens), JsonTokenType.END_OBJECT))
            tokens.append((JsonTokenType.START_OBJECT, None))
            stack.append(ends_marker)
            for key, value in reversed(list(item.items())):
                stack.append(("value", value))
                stack.append(("name", key))
        elif isinstance(item, list):
            ends_marker = ("end", (len(tokens), JsonTokenType.END_ARRAY))
            tokens.append((JsonTokenType.START_ARRAY, None))
            stack.append(ends_marker)
            for value in reversed(item):
                stack.append(("value", value))
        else:
            tokens.append(_scalar_token(item))

    return tuple(tokens), ends


class JsonReader:
    """
    Cursor over the tokens of one JSON document.

    Example:
        >>> reader = JsonReader.from_json('{"kind": "circle", "radius": 2}')
        >>> reader.token_type
        <JsonTokenType.START_OBJECT: 'start_object'>
        >>> reader.try_find_property_value("kind").value
        'circle'
        >>> reader.token_type  # unchanged
        <JsonTokenType.START_OBJECT: 'start_object'>
    """

    def __init__(
        self,
        tokens: tuple[Token, ...],
        ends: dict[int, int],
        position: int = 0,
    ):
        self._tokens = tokens
        self._ends = ends
        self._position = position

    @classmethod
    def from_json(cls, data: str | bytes | bytearray) -> "JsonReader":
        """Parse JSON text and return a reader positioned on the root value."""
        tokens, ends = tokenize(pydantic_core.from_json(data))
        return cls(tokens, ends)

    @classmethod
    def from_python(cls, document: Any) -> "JsonReader":
        """Return a reader over an already parsed JSON document."""
        tokens, ends = tokenize(document)
        return cls(tokens, ends)

    # -------------------------------------------------------------------------
    # Position
    # -------------------------------------------------------------------------

    @property
    def position(self) -> int:
        return self._position

    @property
    def token_type(self) -> JsonTokenType:
        if self._position >= len(self._tokens):
            return JsonTokenType.NONE
        return self._tokens[self._position][0]

    @property
    def value(self) -> Any:
        """The value of the current scalar or PROPERTY_NAME token."""
        if self._position >= len(self._tokens):
            return None
        return self._tokens[self._position][1]

    def read(self) -> bool:
        """Advance to the next token. Returns False at the end of the document."""
        if self._position >= len(self._tokens):
            return False
        self._position += 1
        return self._position < len(self._tokens)

    def copy(self) -> "JsonReader":
        """Return an independent reader at the same position."""
        return JsonReader(self._tokens, self._ends, self._position)

    def _value_end(self, index: int) -> int:
        """Index of the last token of the value starting at index."""
        token_type = self._tokens[index][0]
        if token_type in _START_TOKENS:
            return self._ends[index]
        if token_type in (JsonTokenType.END_OBJECT, JsonTokenType.END_ARRAY, JsonTokenType.PROPERTY_NAME):
            raise JsonReaderError(f"Expected a value at token {index}, found {token_type.name}")
        return index

    def skip(self) -> None:
        """Move past the value at the current position."""
        self.expect_value()
        self._position = self._value_end(self._position) + 1

    # -------------------------------------------------------------------------
    # Expectations
    # -------------------------------------------------------------------------

    def expect(self, token_type: JsonTokenType) -> None:
        if self.token_type is not token_type:
            raise JsonReaderError(
                f"Expected {token_type.name} at token {self._position}, "
                f"found {self.token_type.name}"
            )

    def expect_value(self) -> None:
        if self.token_type in (
            JsonTokenType.NONE,
            JsonTokenType.END_OBJECT,
            JsonTokenType.END_ARRAY,
            JsonTokenType.PROPERTY_NAME,
        ):
            raise JsonReaderError(
                f"Expected a value at token {self._position}, found {self.token_type.name}"
            )

    # -------------------------------------------------------------------------
    # Lookahead
    # -------------------------------------------------------------------------

    def try_find_property_value(
        self,
        name: str,
        *,
        key: Callable[[str], str] | None = None,
    ) -> JsonReader | None:
        """
        Find a property of the object at the current position.

        Only direct members of the object are considered. The reader itself
        does not move.

        Args:
            name: The property name to look for.
            key: Normalizes names before they are compared, e.g.
                ``str.casefold`` to ignore case.

        Returns:
            A new reader positioned on the property's value, or None if the
            object has no such property. When several members match, the
            last one wins, as it does when the object is decoded.

        Raises:
            JsonReaderError: If the current token is not START_OBJECT.
        """
        self.expect(JsonTokenType.START_OBJECT)
        wanted = key(name) if key else name

        found = None
        index = self._position + 1
        while self._tokens[index][0] is JsonTokenType.PROPERTY_NAME:
            member = self._tokens[index][1]
            if (key(member) if key else member) == wanted:
                found = index + 1
            index = self._value_end(index + 1) + 1
        if found is None:
            return None
        return JsonReader(self._tokens, self._ends, found)

    # -------------------------------------------------------------------------
    # Materialization
    # -------------------------------------------------------------------------

    def read_raw(self) -> Any:
        """Materialize the current value as plain Python data and move past it."""
        self.expect_value()
        end = self._value_end(self._position)

        root: Any = None
        containers: list[Any] = []
        pending_name: str | None = None

        def attach(value: Any) -> None:
            nonlocal root, pending_name
            if not containers:
                root = value
            elif isinstance(containers[-1], dict):
                containers[-1][pending_name] = value
                pending_name = None
            else:
                containers[-1].append(value)

        for token_type, value in self._tokens[self._position:end + 1]:
            if token_type is JsonTokenType.START_OBJECT:
                container: Any = {}
                attach(container)
                containers.append(container)
            elif token_type is JsonTokenType.START_ARRAY:
                container = []
                attach(container)
                containers.append(container)
            elif token_type in (JsonTokenType.END_OBJECT, JsonTokenType.END_ARRAY):
                containers.pop()
            elif token_type is JsonTokenType.PROPERTY_NAME:
                pending_name = value
            else:
                attach(value)

        self._position = end + 1
        return root
