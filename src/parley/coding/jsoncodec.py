"""JSON encoder/decoder for the structural coding contract."""

from __future__ import annotations

import json
from typing import Any

from parley.coding.base import (
    ArrayReader,
    ArrayWriter,
    Decoder,
    Encoder,
    ObjectReader,
    ObjectWriter,
)
from parley.errors import DecodingError


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


# =============================================================================
# Encoding
# =============================================================================


class JsonEncoder(Encoder):
    """Build a JSON-compatible Python value (dict/list/primitives)."""

    def __init__(self) -> None:
        self.value: Any = None

    def write_bool(self, value: bool) -> None:
        self.value = value

    def write_str(self, value: str) -> None:
        self.value = value

    def write_int(self, value: int) -> None:
        self.value = value

    def write_float(self, value: float) -> None:
        self.value = value

    def write_none(self) -> None:
        self.value = None

    def write_object(self) -> ObjectWriter:
        target: dict[str, Any] = {}
        self.value = target
        return _JsonObjectWriter(target)

    def write_array(self) -> ArrayWriter:
        target: list[Any] = []
        self.value = target
        return _JsonArrayWriter(target)


class _JsonObjectWriter(ObjectWriter):
    def __init__(self, target: dict[str, Any]) -> None:
        self._target = target

    def field(self, key: str, value: Any) -> None:
        child = JsonEncoder()
        child.encode(value)
        self._target[key] = child.value

    def optional_field(self, key: str, value: Any, type_: Any) -> None:
        # Absent optionals are omitted rather than written as null.
        if value is None:
            return
        self.field(key, value)


class _JsonArrayWriter(ArrayWriter):
    def __init__(self, target: list[Any]) -> None:
        self._target = target

    def append(self, value: Any) -> None:
        child = JsonEncoder()
        child.encode(value)
        self._target.append(child.value)


# =============================================================================
# Decoding
# =============================================================================


class JsonDecoder(Decoder):
    """Read from a parsed JSON value, failing with the offending path."""

    def __init__(self, value: Any, path: tuple[str, ...] = ()) -> None:
        self._value = value
        self._path = path

    def _mismatch(self, expected: str) -> DecodingError:
        return DecodingError(
            f"expected {expected}, got {_describe(self._value)}", path=self._path
        )

    def read_bool(self) -> bool:
        if not isinstance(self._value, bool):
            raise self._mismatch("boolean")
        return self._value

    def read_str(self) -> str:
        if not isinstance(self._value, str):
            raise self._mismatch("string")
        return self._value

    def read_int(self) -> int:
        value = self._value
        if isinstance(value, bool):
            raise self._mismatch("integer")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise self._mismatch("integer")

    def read_float(self) -> float:
        value = self._value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._mismatch("number")
        return float(value)

    def read_object(self) -> ObjectReader:
        if not isinstance(self._value, dict):
            raise self._mismatch("object")
        return _JsonObjectReader(self._value, self._path)

    def read_array(self) -> ArrayReader:
        if not isinstance(self._value, list):
            raise self._mismatch("array")
        return _JsonArrayReader(self._value, self._path)


class _JsonObjectReader(ObjectReader):
    def __init__(self, mapping: dict[str, Any], path: tuple[str, ...]) -> None:
        self._mapping = mapping
        self._path = path

    def field(self, key: str, type_: Any) -> Any:
        if key not in self._mapping:
            raise DecodingError(f"missing required key {key!r}", path=self._path)
        return JsonDecoder(self._mapping[key], (*self._path, key)).decode(type_)

    def optional_field(self, key: str, type_: Any) -> Any | None:
        value = self._mapping.get(key)
        if value is None:
            return None
        return JsonDecoder(value, (*self._path, key)).decode(type_)


class _JsonArrayReader(ArrayReader):
    def __init__(self, values: list[Any], path: tuple[str, ...]) -> None:
        self._values = values
        self._path = path

    def items(self, type_: Any) -> list[Any]:
        return [
            JsonDecoder(value, (*self._path, str(i))).decode(type_)
            for i, value in enumerate(self._values)
        ]


# =============================================================================
# Entry points
# =============================================================================


def to_json_value(value: Any) -> Any:
    """Encode *value* into plain JSON-compatible Python data."""
    encoder = JsonEncoder()
    encoder.encode(value)
    return encoder.value


def to_json(value: Any, *, indent: int | None = None) -> str:
    """Encode *value* into a JSON string through its own ``encode``."""
    return json.dumps(to_json_value(value), indent=indent, ensure_ascii=False)


def from_json_value(type_: Any, value: Any) -> Any:
    """Decode already-parsed JSON data into *type_*."""
    return JsonDecoder(value).decode(type_)


def from_json(type_: Any, text: str) -> Any:
    """Parse *text* and decode it into *type_* through its own ``decode``."""
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodingError(
            f"invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            hint="The text must be a single JSON document.",
        ) from e
    return from_json_value(type_, value)
