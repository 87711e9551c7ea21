"""Structured types: one seam over Codable classes and Pydantic models.

Anywhere Parley accepts a structured type (tool arguments, ``generating=``),
it accepts either a class implementing the ``parley.coding`` contract or a
Pydantic ``BaseModel`` subclass, or ``list[...]`` of either.
"""

from __future__ import annotations

import json
from typing import Any, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from parley.coding import from_json, infer_schema, is_codable, to_json
from parley.coding.base import PRIMITIVE_TYPES, Encodable, list_item_type
from parley.errors import CodingError, ConfigurationError, DecodingError


def is_pydantic_model(type_: Any) -> bool:
    return isinstance(type_, type) and issubclass(type_, BaseModel)


def _innermost_item(type_: Any) -> Any:
    """Strip ``list[...]`` layers from *type_*."""
    while (item := list_item_type(type_)) is not None:
        type_ = item
    return type_


def _uses_pydantic(type_: Any) -> bool:
    return is_pydantic_model(_innermost_item(type_))


def _type_name(type_: Any) -> str:
    return repr(type_) if get_origin(type_) is not None else type_.__name__


def validate_structured_type(type_: Any, *, role: str) -> None:
    """Fail early when *type_* cannot be described or decoded."""
    item = _innermost_item(type_)
    if is_pydantic_model(item) or is_codable(item) or item in PRIMITIVE_TYPES:
        return
    raise ConfigurationError(
        f"{role} must be a Codable class or Pydantic model, got {type_!r}",
        hint="Subclass parley.Record on a dataclass, or pass a BaseModel subclass.",
    )


def schema_for(type_: Any) -> dict[str, Any]:
    """Return the JSON Schema dict advertised to the provider for *type_*."""
    if is_pydantic_model(type_):
        return type_.model_json_schema()
    if _uses_pydantic(type_):
        return TypeAdapter(type_).json_schema()
    return infer_schema(type_).to_dict()


def decode_json(type_: Any, text: str) -> Any:
    """Decode JSON *text* into *type_*.

    Every failure raised by the type's own decode logic, including a
    ``ValueError`` from a ``__post_init__`` check, surfaces as a
    ``DecodingError``.
    """
    try:
        if is_pydantic_model(type_):
            return type_.model_validate_json(text)
        if _uses_pydantic(type_):
            return TypeAdapter(type_).validate_json(text)
        return from_json(type_, text)
    except CodingError:
        raise
    except ValidationError as e:
        raise DecodingError(
            f"{_type_name(type_)} validation failed: {e.error_count()} error(s)",
            hint=str(e),
        ) from e
    except Exception as e:
        raise DecodingError(
            f"{_type_name(type_)} rejected the value: {type(e).__name__}: {e}",
            hint="The type's own decode or validation logic raised.",
        ) from e


def encode_json(value: Any) -> str:
    """Serialize *value* (a tool output or structured value) to a JSON string."""
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    if isinstance(value, Encodable) or (
        isinstance(value, (list, tuple)) and any(isinstance(v, Encodable) for v in value)
    ):
        return to_json(value)
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise CodingError(
            f"Cannot serialize {type(value).__name__} output: {e}",
            hint="Return JSON-compatible data, a Record, or a BaseModel.",
        ) from e
