"""Structural coding: the encode/decode contract, a JSON codec, and schema inference."""

from .base import (
    ArrayReader,
    ArrayWriter,
    Codable,
    Decodable,
    Decoder,
    Encodable,
    Encoder,
    ObjectReader,
    ObjectWriter,
    Record,
    is_codable,
)
from .jsoncodec import from_json, from_json_value, to_json, to_json_value
from .schema import MAX_SCHEMA_DEPTH, Schema, SchemaKind, infer_schema

__all__ = [
    "MAX_SCHEMA_DEPTH",
    "ArrayReader",
    "ArrayWriter",
    "Codable",
    "Decodable",
    "Decoder",
    "Encodable",
    "Encoder",
    "ObjectReader",
    "ObjectWriter",
    "Record",
    "Schema",
    "SchemaKind",
    "from_json",
    "from_json_value",
    "infer_schema",
    "is_codable",
    "to_json",
    "to_json_value",
]
