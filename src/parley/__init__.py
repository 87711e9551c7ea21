"""Parley: stateful conversations with OpenAI-compatible chat models.

Public API:
    - LanguageModel / Session: conversation entry points
    - tool / ToolRegistry: local functions the model may call
    - Record / infer_schema: structured types without reflection
    - Host / GenerationOptions: configuration
"""

from __future__ import annotations

import logging

from parley.coding import Record, Schema, from_json, infer_schema, to_json
from parley.config import Host
from parley.errors import (
    CodingError,
    ConfigurationError,
    DecodingError,
    GenerationError,
    MaxIterationsExceededError,
    ParleyError,
    SchemaDecodeError,
    ToolArgumentDecodeError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    TransportError,
    TransportErrorKind,
    UnexpectedResponseError,
    UnsupportedRecursiveSchemaError,
)
from parley.loop import CompletionLoop
from parley.models import Message, ToolCall
from parley.options import GenerationOptions
from parley.providers import HttpTransport, MockTransport, Transport
from parley.session import LanguageModel, Session
from parley.tools import FunctionTool, NoArguments, Tool, ToolRegistry, tool
from parley.transcript import (
    ErrorEntry,
    Instructions,
    Prompt,
    Response,
    ToolResult,
    Transcript,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("parley")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("parley").addHandler(logging.NullHandler())

__all__ = [
    "CodingError",
    "CompletionLoop",
    "ConfigurationError",
    "DecodingError",
    "ErrorEntry",
    "FunctionTool",
    "GenerationError",
    "GenerationOptions",
    "Host",
    "HttpTransport",
    "Instructions",
    "LanguageModel",
    "MaxIterationsExceededError",
    "Message",
    "MockTransport",
    "NoArguments",
    "ParleyError",
    "Prompt",
    "Record",
    "Response",
    "Schema",
    "SchemaDecodeError",
    "Session",
    "Tool",
    "ToolArgumentDecodeError",
    "ToolCall",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolResult",
    "Transcript",
    "Transport",
    "TransportError",
    "TransportErrorKind",
    "UnexpectedResponseError",
    "UnsupportedRecursiveSchemaError",
    "from_json",
    "infer_schema",
    "to_json",
    "tool",
]
