"""Tools: registration, provider definitions, and invocation."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
import inspect
import json
import logging
import re
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from parley.coding import Record
from parley.errors import (
    CodingError,
    ConfigurationError,
    ToolArgumentDecodeError,
    ToolExecutionError,
    ToolNotFoundError,
)
from parley.providers.wire import FunctionDefinition, ToolDefinition
from parley.structured import (
    decode_json,
    encode_json,
    schema_for,
    validate_structured_type,
)
from parley.transcript import ErrorEntry, ToolResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from parley.models import ToolCall
    from parley.transcript import Entry

logger = logging.getLogger(__name__)

# Function names accepted by OpenAI-compatible servers.
_TOOL_NAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@runtime_checkable
class Tool(Protocol):
    """A local function the model may ask to run.

    ``arguments`` is the structured type the model's JSON arguments decode
    into; its schema is advertised to the provider. ``call`` may be a plain or
    an async method and returns any JSON-serializable value, ``Record``, or
    Pydantic model.
    """

    @property
    def name(self) -> str: ...  # noqa: D102

    @property
    def description(self) -> str: ...  # noqa: D102

    @property
    def arguments(self) -> Any: ...  # noqa: D102

    def call(self, arguments: Any) -> Any: ...  # noqa: D102


@dataclass(frozen=True)
class NoArguments(Record):
    """Argument type for tools that take no input."""


@dataclass(frozen=True)
class FunctionTool:
    """A ``Tool`` backed by a plain or async callable."""

    name: str
    description: str
    arguments: Any
    fn: Callable[[Any], Any]

    async def call(self, arguments: Any) -> Any:
        result = self.fn(arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


def tool(
    name: str | None = None,
    *,
    arguments: Any = NoArguments,
    description: str | None = None,
) -> Callable[[Callable[[Any], Any]], FunctionTool]:
    """Wrap a function as a ``FunctionTool``.

    The tool name defaults to the function name and the description to its
    docstring.

    Example:
        @tool(arguments=WeatherQuery)
        async def get_weather(query: WeatherQuery) -> Forecast:
            '''Look up the forecast for a city.'''
            ...
    """

    def decorate(fn: Callable[[Any], Any]) -> FunctionTool:
        return FunctionTool(
            name=name or fn.__name__,
            description=description or inspect.getdoc(fn) or "",
            arguments=arguments,
            fn=fn,
        )

    return decorate


class ToolRegistry(Mapping[str, Tool]):
    """Immutable name → tool mapping built once per session."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        """Register *tools*; names must be unique and provider-safe."""
        registry: dict[str, Tool] = {}
        for t in tools:
            if not isinstance(t, Tool):
                raise ConfigurationError(
                    f"Expected a Tool, got {type(t).__name__}",
                    hint="Use @parley.tool or implement name/description/arguments/call.",
                )
            if not _TOOL_NAME_RE.match(t.name):
                raise ConfigurationError(
                    f"Invalid tool name {t.name!r}",
                    hint="Tool names may use letters, digits, '_' and '-' (max 64).",
                )
            if t.name in registry:
                raise ConfigurationError(
                    f"Duplicate tool name {t.name!r}",
                    hint="Each registered tool needs a unique name.",
                )
            validate_structured_type(t.arguments, role=f"Tool {t.name!r} arguments")
            registry[t.name] = t

        self._tools: Mapping[str, Tool] = MappingProxyType(registry)
        self._definitions = tuple(
            ToolDefinition(
                function=FunctionDefinition(
                    name=t.name,
                    description=t.description,
                    parameters=schema_for(t.arguments),
                )
            )
            for t in registry.values()
        )

    def __getitem__(self, name: str) -> Tool:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def definitions(self) -> list[ToolDefinition]:
        """Provider tool definitions, in registration order."""
        return list(self._definitions)


def _failure_output(error: Exception) -> str:
    return json.dumps({"error": str(error)}, ensure_ascii=False)


class ToolInvoker:
    """Run tool calls against a registry and report them as transcript entries."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    async def invoke(self, call: ToolCall) -> list[Entry]:
        """Run *call* and return the entries it produces.

        Unknown tools raise ``ToolNotFoundError``. Argument and execution
        failures are reported to the model as a synthetic ``{"error": ...}``
        result (preceded by an ``ErrorEntry``) so the conversation continues.
        """
        t = self._registry.get(call.name)
        if t is None:
            raise ToolNotFoundError(
                f"The model called unregistered tool {call.name!r}",
                tool_name=call.name,
                hint=f"Registered tools: {sorted(self._registry) or 'none'}.",
            )

        # Some servers send "" for argument-less calls.
        raw_arguments = call.arguments.strip() or "{}"
        try:
            arguments = decode_json(t.arguments, raw_arguments)
        except CodingError as e:
            error = ToolArgumentDecodeError(
                f"Tool {call.name!r} received invalid arguments: {e}",
                tool_name=call.name,
            )
            error.__cause__ = e
            logger.info("Tool %s argument decoding failed: %s", call.name, e)
            return self._failed(call, error)

        try:
            result = t.call(arguments)
            if inspect.isawaitable(result):
                result = await result
            output = encode_json(result)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = ToolExecutionError(
                f"Tool {call.name!r} failed: {type(e).__name__}: {e}",
                tool_name=call.name,
            )
            error.__cause__ = e
            logger.info("Tool %s execution failed: %s", call.name, e)
            return self._failed(call, error)

        logger.debug("Tool %s call_id=%s succeeded", call.name, call.id)
        return [ToolResult(call_id=call.id, tool_name=call.name, output=output)]

    @staticmethod
    def _failed(call: ToolCall, error: Exception) -> list[Entry]:
        return [
            ErrorEntry(error),
            ToolResult(
                call_id=call.id, tool_name=call.name, output=_failure_output(error)
            ),
        ]
