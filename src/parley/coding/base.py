"""Structural coding contract.

A structured type takes part in encoding, decoding, and schema inference by
implementing two methods against the visitor pair defined here:

- ``encode(self, encoder)`` writes the value field by field;
- ``decode(cls, decoder)`` (a classmethod) builds a value field by field.

Encoders and decoders never look at the type itself: they only answer the
requests the type makes. That is what lets ``parley.coding.schema`` derive a
JSON Schema by swapping in a placeholder decoder and a schema-recording
encoder.

Example:
    class Point:
        def __init__(self, x: int, y: int) -> None:
            self.x, self.y = x, y

        def encode(self, encoder: Encoder) -> None:
            obj = encoder.write_object()
            obj.field("x", self.x)
            obj.field("y", self.y)

        @classmethod
        def decode(cls, decoder: Decoder) -> Point:
            obj = decoder.read_object()
            return cls(obj.field("x", int), obj.field("y", int))

For plain records, subclass ``Record`` on a dataclass instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import dataclasses
from functools import cache
import types
from typing import (
    Any,
    Protocol,
    Self,
    Union,
    get_args,
    get_origin,
    get_type_hints,
    runtime_checkable,
)

from parley.errors import CodingError

#: Python types that map onto schema primitives.
PRIMITIVE_TYPES: tuple[type, ...] = (bool, str, int, float)


@runtime_checkable
class Encodable(Protocol):
    """A value that can write itself into an ``Encoder``."""

    def encode(self, encoder: Encoder) -> None: ...  # noqa: D102


class Decodable(Protocol):
    """A type that can build itself from a ``Decoder``."""

    @classmethod
    def decode(cls, decoder: Decoder) -> Self: ...  # noqa: D102


class Codable(Encodable, Decodable, Protocol):
    """Both halves of the contract; required for schema inference."""


def is_codable(type_: Any) -> bool:
    """Return True when *type_* is a class implementing both halves."""
    return (
        isinstance(type_, type)
        and callable(getattr(type_, "decode", None))
        and callable(getattr(type_, "encode", None))
    )


def list_item_type(type_: Any) -> Any | None:
    """Return ``T`` for a ``list[T]`` type spec, else None."""
    if get_origin(type_) is not list:
        return None
    args = get_args(type_)
    if len(args) != 1:
        raise CodingError(
            f"list type spec needs exactly one item type, got {type_!r}",
            hint="Use list[int], list[str], list[MyRecord], ...",
        )
    return args[0]


# =============================================================================
# Encoding side
# =============================================================================


class ObjectWriter(ABC):
    """Keyed writes for one object."""

    @abstractmethod
    def field(self, key: str, value: Any) -> None:
        """Write a required field."""

    @abstractmethod
    def optional_field(self, key: str, value: Any, type_: Any) -> None:
        """Write a field that may be None; *type_* is its declared type."""


class ArrayWriter(ABC):
    """Ordered writes for one sequence."""

    @abstractmethod
    def append(self, value: Any) -> None:
        """Write the next element."""


class Encoder(ABC):
    """Sink a value writes itself into."""

    @abstractmethod
    def write_bool(self, value: bool) -> None: ...  # noqa: D102

    @abstractmethod
    def write_str(self, value: str) -> None: ...  # noqa: D102

    @abstractmethod
    def write_int(self, value: int) -> None: ...  # noqa: D102

    @abstractmethod
    def write_float(self, value: float) -> None: ...  # noqa: D102

    @abstractmethod
    def write_none(self) -> None: ...  # noqa: D102

    @abstractmethod
    def write_object(self) -> ObjectWriter: ...  # noqa: D102

    @abstractmethod
    def write_array(self) -> ArrayWriter: ...  # noqa: D102

    def encode(self, value: Any) -> None:
        """Dispatch *value* to the matching write."""
        # bool before int: bool is an int subclass.
        if value is None:
            self.write_none()
        elif isinstance(value, bool):
            self.write_bool(value)
        elif isinstance(value, int):
            self.write_int(value)
        elif isinstance(value, float):
            self.write_float(value)
        elif isinstance(value, str):
            self.write_str(value)
        elif isinstance(value, (list, tuple)):
            writer = self.write_array()
            for item in value:
                writer.append(item)
        elif isinstance(value, Encodable):
            value.encode(self)
        else:
            raise CodingError(
                f"Cannot encode value of type {type(value).__name__}",
                hint="Implement encode(self, encoder) or subclass Record.",
            )


# =============================================================================
# Decoding side
# =============================================================================


class ObjectReader(ABC):
    """Keyed reads for one object."""

    @abstractmethod
    def field(self, key: str, type_: Any) -> Any:
        """Read a required field of *type_*."""

    @abstractmethod
    def optional_field(self, key: str, type_: Any) -> Any | None:
        """Read a field of *type_*, returning None when it is absent."""


class ArrayReader(ABC):
    """Reads for one sequence."""

    @abstractmethod
    def items(self, type_: Any) -> list[Any]:
        """Read every remaining element as *type_*."""


class Decoder(ABC):
    """Source a type builds itself from."""

    @abstractmethod
    def read_bool(self) -> bool: ...  # noqa: D102

    @abstractmethod
    def read_str(self) -> str: ...  # noqa: D102

    @abstractmethod
    def read_int(self) -> int: ...  # noqa: D102

    @abstractmethod
    def read_float(self) -> float: ...  # noqa: D102

    @abstractmethod
    def read_object(self) -> ObjectReader: ...  # noqa: D102

    @abstractmethod
    def read_array(self) -> ArrayReader: ...  # noqa: D102

    def decode(self, type_: Any) -> Any:
        """Build a value of *type_*: a primitive, ``list[T]``, or a Codable."""
        if type_ is bool:
            return self.read_bool()
        if type_ is str:
            return self.read_str()
        if type_ is int:
            return self.read_int()
        if type_ is float:
            return self.read_float()

        item_type = list_item_type(type_)
        if item_type is not None:
            return self.read_array().items(item_type)

        decode = getattr(type_, "decode", None)
        if isinstance(type_, type) and callable(decode):
            return decode(self)

        raise CodingError(
            f"Cannot decode type {type_!r}",
            hint="Use bool/str/int/float, list[T], or a type with a decode classmethod.",
        )


# =============================================================================
# Record: synthesized coding for dataclasses
# =============================================================================


@dataclasses.dataclass(frozen=True)
class _FieldSpec:
    name: str
    key: str
    type_: Any
    optional: bool


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1 and len(get_args(hint)) == 2:
            return args[0], True
        raise CodingError(
            f"Unsupported union annotation {hint!r}",
            hint="Only `T | None` unions are supported on Record fields.",
        )
    return hint, False


@cache
def _field_specs(cls: type) -> tuple[_FieldSpec, ...]:
    if not dataclasses.is_dataclass(cls):
        raise CodingError(
            f"{cls.__name__} subclasses Record but is not a dataclass",
            hint="Decorate the class with @dataclass.",
        )
    hints = get_type_hints(cls)
    specs: list[_FieldSpec] = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        type_, optional = _unwrap_optional(hints[f.name])
        specs.append(
            _FieldSpec(
                name=f.name,
                key=f.metadata.get("key", f.name),
                type_=type_,
                optional=optional,
            )
        )
    return tuple(specs)


class Record:
    """Mixin that derives ``encode``/``decode`` from dataclass fields.

    ``T | None`` fields are optional; everything else is required. A field's
    wire key defaults to its name and can be overridden with
    ``field(metadata={"key": "wireName"})``.

    Example:
        @dataclass
        class Person(Record):
            name: str
            age: int
            nickname: str | None = None
    """

    def encode(self, encoder: Encoder) -> None:
        writer = encoder.write_object()
        for spec in _field_specs(type(self)):
            value = getattr(self, spec.name)
            if spec.optional:
                writer.optional_field(spec.key, value, spec.type_)
            else:
                writer.field(spec.key, value)

    @classmethod
    def decode(cls, decoder: Decoder) -> Self:
        reader = decoder.read_object()
        kwargs: dict[str, Any] = {}
        for spec in _field_specs(cls):
            if spec.optional:
                kwargs[spec.name] = reader.optional_field(spec.key, spec.type_)
            else:
                kwargs[spec.name] = reader.field(spec.key, spec.type_)
        return cls(**kwargs)
