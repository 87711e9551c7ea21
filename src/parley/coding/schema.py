"""Reflection-free JSON Schema inference.

The schema of a structured type is derived from the type's own coding logic
in two passes:

1. ``decode`` runs against a placeholder source that answers every primitive
   request with a zero value, recurses for composites, treats optionals as
   absent, and offers exactly one element for sequences. It never runs out of
   data, so construction always succeeds.
2. The placeholder instance is ``encode``-d into a sink that records shape
   (kinds, properties, requiredness, item schemas) instead of bytes.

The result captures shape and requiredness only: no numeric ranges, string
formats, or enumerations. Self-referential types would recurse forever, so
nesting is capped at ``MAX_SCHEMA_DEPTH``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Literal

from parley.coding.base import (
    ArrayReader,
    ArrayWriter,
    Decoder,
    Encoder,
    ObjectReader,
    ObjectWriter,
)
from parley.errors import UnsupportedRecursiveSchemaError

if TYPE_CHECKING:
    from collections.abc import Mapping

SchemaKind = Literal["boolean", "string", "number", "integer", "object", "array"]

MAX_SCHEMA_DEPTH = 32


@dataclass(frozen=True)
class Schema:
    """Structural description of a type's shape."""

    kind: SchemaKind
    properties: Mapping[str, Schema] | None = None
    required: tuple[str, ...] | None = None
    items: Schema | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Render as a JSON Schema object (``kind`` becomes ``type``)."""
        out: dict[str, Any] = {"type": self.kind}
        if self.description is not None:
            out["description"] = self.description
        if self.properties is not None:
            out["properties"] = {k: v.to_dict() for k, v in self.properties.items()}
        if self.required is not None:
            out["required"] = list(self.required)
        if self.items is not None:
            out["items"] = self.items.to_dict()
        return out


def _type_name(type_: Any) -> str:
    return getattr(type_, "__name__", None) or repr(type_)


def _descend(depth: int, type_: Any) -> int:
    child = depth + 1
    if child > MAX_SCHEMA_DEPTH:
        raise UnsupportedRecursiveSchemaError(
            f"Schema nesting exceeded {MAX_SCHEMA_DEPTH} levels at {_type_name(type_)}",
            hint="Self-referential types cannot be described; break the cycle.",
        )
    return child


# =============================================================================
# Pass 1: placeholder source
# =============================================================================


class PlaceholderDecoder(Decoder):
    """Decoder that never runs out of data."""

    def __init__(self, depth: int = 0) -> None:
        self._depth = depth

    def read_bool(self) -> bool:
        return False

    def read_str(self) -> str:
        return ""

    def read_int(self) -> int:
        return 0

    def read_float(self) -> float:
        return 0.0

    def read_object(self) -> ObjectReader:
        return _PlaceholderObjectReader(self._depth)

    def read_array(self) -> ArrayReader:
        return _PlaceholderArrayReader(self._depth)


class _PlaceholderObjectReader(ObjectReader):
    def __init__(self, depth: int) -> None:
        self._depth = depth

    def field(self, key: str, type_: Any) -> Any:
        return PlaceholderDecoder(_descend(self._depth, type_)).decode(type_)

    def optional_field(self, key: str, type_: Any) -> Any | None:
        # The absent sentinel; the sink re-infers the declared type.
        return None


class _PlaceholderArrayReader(ArrayReader):
    def __init__(self, depth: int) -> None:
        self._depth = depth

    def items(self, type_: Any) -> list[Any]:
        return [PlaceholderDecoder(_descend(self._depth, type_)).decode(type_)]


# =============================================================================
# Pass 2: schema sink
# =============================================================================


class SchemaEncoder(Encoder):
    """Encoder that records the shape of what is written."""

    def __init__(self, depth: int = 0) -> None:
        self._depth = depth
        self._kind: SchemaKind = "object"
        self._properties: dict[str, Schema] | None = None
        self._required: list[str] | None = None
        self._items: Schema | None = None

    @property
    def depth(self) -> int:
        return self._depth

    def schema(self) -> Schema:
        """Freeze what has been recorded so far."""
        properties = self._properties
        required = self._required
        return Schema(
            kind=self._kind,
            properties=dict(properties) if properties is not None else None,
            required=tuple(required) if required is not None else None,
            items=self._items,
        )

    def write_bool(self, value: bool) -> None:
        self._kind = "boolean"

    def write_str(self, value: str) -> None:
        self._kind = "string"

    def write_int(self, value: int) -> None:
        self._kind = "integer"

    def write_float(self, value: float) -> None:
        self._kind = "number"

    def write_none(self) -> None:
        pass

    def write_object(self) -> ObjectWriter:
        self._kind = "object"
        self._properties = {}
        self._required = []
        return _SchemaObjectWriter(self._depth, self._properties, self._required)

    def write_array(self) -> ArrayWriter:
        self._kind = "array"
        return _SchemaArrayWriter(self)

    def set_items(self, items: Schema) -> None:
        self._items = items


class _SchemaObjectWriter(ObjectWriter):
    def __init__(
        self, depth: int, properties: dict[str, Schema], required: list[str]
    ) -> None:
        self._depth = depth
        self._properties = properties
        self._required = required

    def field(self, key: str, value: Any) -> None:
        if value is None:
            return
        child = SchemaEncoder(_descend(self._depth, type(value)))
        child.encode(value)
        self._properties[key] = child.schema()
        self._required.append(key)

    def optional_field(self, key: str, value: Any, type_: Any) -> None:
        if value is not None:
            self.field(key, value)
            return
        self._properties[key] = _infer(type_, _descend(self._depth, type_))


class _SchemaArrayWriter(ArrayWriter):
    def __init__(self, owner: SchemaEncoder) -> None:
        self._owner = owner
        self._seen = False

    def append(self, value: Any) -> None:
        # Sequences are assumed homogeneous: the first element decides.
        if self._seen:
            return
        self._seen = True
        child = SchemaEncoder(_descend(self._owner.depth, type(value)))
        child.encode(value)
        self._owner.set_items(child.schema())


# =============================================================================
# Entry point
# =============================================================================


def _infer(type_: Any, depth: int) -> Schema:
    instance = PlaceholderDecoder(depth).decode(type_)
    sink = SchemaEncoder(depth)
    sink.encode(instance)
    return sink.schema()


def infer_schema(type_: Any, *, description: str | None = None) -> Schema:
    """Derive the Schema of *type_* from its own decode/encode logic.

    *type_* may be a primitive (``bool``, ``str``, ``int``, ``float``), a
    ``list[T]``, or a class implementing ``decode``/``encode``.

    Raises:
        UnsupportedRecursiveSchemaError: If *type_* refers back to itself.
        CodingError: If *type_* does not implement the coding contract.
    """
    try:
        schema = _infer(type_, 0)
    except RecursionError as e:
        raise UnsupportedRecursiveSchemaError(
            f"Schema inference for {_type_name(type_)} did not terminate",
            hint="Self-referential types cannot be described; break the cycle.",
        ) from e
    if description is None:
        return schema
    return replace(schema, description=description)
