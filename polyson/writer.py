"""
Token-driven JSON writer.

JsonWriter receives the same kind of tokens a JsonReader produces and builds
the document in memory; getvalue() renders it with pydantic_core.
"""

from __future__ import annotations

from typing import Any

import pydantic_core

from polyson.errors import JsonWriterError

_UNSET = object()


class JsonWriter:
    """
    Builds one JSON document from write calls.

    Example:
        >>> writer = JsonWriter()
        >>> writer.write_start_object()
        >>> writer.write_property_name("kind")
        >>> writer.write_value("circle")
        >>> writer.write_end_object()
        >>> writer.getvalue()
        '{"kind":"circle"}'
    """

    def __init__(self, indent: int | None = None):
        self.indent = indent
        self._root: Any = _UNSET
        self._containers: list[Any] = []
        self._pending_name: str | None = None

    def _attach(self, value: Any) -> None:
        if not self._containers:
            if self._root is not _UNSET:
                raise JsonWriterError("A JSON document can only have one root value")
            self._root = value
            return

        container = self._containers[-1]
        if isinstance(container, dict):
            if self._pending_name is None:
                raise JsonWriterError("Write a property name before writing an object member")
            container[self._pending_name] = value
            self._pending_name = None
        else:
            container.append(value)

    def _close(self, kind: type) -> None:
        if not self._containers or not isinstance(self._containers[-1], kind):
            raise JsonWriterError(f"No open {'object' if kind is dict else 'array'} to close")
        if self._pending_name is not None:
            raise JsonWriterError(f"Property {self._pending_name!r} has no value")
        self._containers.pop()

    def write_start_object(self) -> None:
        container: dict = {}
        self._attach(container)
        self._containers.append(container)

    def write_end_object(self) -> None:
        self._close(dict)

    def write_start_array(self) -> None:
        container: list = []
        self._attach(container)
        self._containers.append(container)

    def write_end_array(self) -> None:
        self._close(list)

    def write_property_name(self, name: str) -> None:
        if not self._containers or not isinstance(self._containers[-1], dict):
            raise JsonWriterError("Property names can only be written inside an object")
        if self._pending_name is not None:
            raise JsonWriterError(f"Property {self._pending_name!r} has no value")
        self._pending_name = name

    def write_value(self, value: Any) -> None:
        """Write a scalar, or an already JSON-compatible list/dict, as one value."""
        self._attach(value)

    def write_null(self) -> None:
        self._attach(None)

    @property
    def complete(self) -> bool:
        return self._root is not _UNSET and not self._containers

    def to_python(self) -> Any:
        """Return the written document as plain Python data."""
        if not self.complete:
            raise JsonWriterError("The JSON document is incomplete")
        return self._root

    def getvalue(self) -> str:
        """Render the written document as JSON text."""
        return pydantic_core.to_json(self.to_python(), indent=self.indent).decode()
