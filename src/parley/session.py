"""Sessions: the public conversation surface over the completion loop."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Any, Self, TypeVar, overload

from parley.errors import CodingError, SchemaDecodeError
from parley.loop import MAX_ITERATIONS, CompletionLoop
from parley.providers.http import HttpTransport
from parley.providers.mock import MockTransport
from parley.providers.wire import JSON_OBJECT_FORMAT
from parley.structured import decode_json, schema_for, validate_structured_type
from parley.tools import ToolRegistry
from parley.transcript import ErrorEntry, Prompt, Response, Transcript

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from parley.config import Host
    from parley.options import GenerationOptions
    from parley.providers.base import Transport
    from parley.tools import Tool
    from parley.transcript import Entry

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MODEL = "default"

# Models often wrap JSON mode output in a markdown fence anyway.
_JSON_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*\n(.*?)\n?\s*```\s*$", re.DOTALL)


def unwrap_json_fence(text: str) -> str:
    """Return the body of a fenced code block, or *text* unchanged."""
    match = _JSON_FENCE_RE.match(text)
    return match.group(1) if match else text


class Session:
    """One conversation: a transcript, a tool set, and a completion loop.

    Calls on the same session are serialized; each one sees the full history
    left by the previous call, including its errors.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        model: str | None = None,
        instructions: str | None = None,
        tools: Iterable[Tool] = (),
        max_iterations: int = MAX_ITERATIONS,
    ) -> None:
        """Build a session; tool registration errors surface here."""
        self.model = model
        self._tools = ToolRegistry(tools)
        self._transcript = Transcript(instructions)
        self._loop = CompletionLoop(transport, max_iterations=max_iterations)
        self._lock = asyncio.Lock()

    @property
    def entries(self) -> tuple[Entry, ...]:
        return self._transcript.entries

    @property
    def errors(self) -> tuple[BaseException, ...]:
        return self._transcript.errors

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @overload
    async def respond(
        self,
        prompt: str,
        *,
        generating: None = None,
        options: GenerationOptions | None = None,
    ) -> str: ...

    @overload
    async def respond(
        self,
        prompt: str,
        *,
        generating: type[T],
        options: GenerationOptions | None = None,
    ) -> T: ...

    async def respond(
        self,
        prompt: str,
        *,
        generating: Any = None,
        options: GenerationOptions | None = None,
    ) -> Any:
        """Send *prompt* and return the model's answer.

        Args:
            prompt: The user message.
            generating: Optional structured type (a ``Codable`` class, a
                Pydantic model, or ``list[...]`` of either). When given, JSON
                mode is requested, the inferred schema is added to the
                instructions, and the answer is decoded into this type.
            options: Per-call sampling and model overrides.

        Returns:
            The answer text, or an instance of *generating*.

        Raises:
            ConfigurationError: *generating* is not a structured type. Raised
                before anything is recorded.
            UnsupportedRecursiveSchemaError: No schema could be inferred for
                *generating*; the error is recorded in the transcript.
            SchemaDecodeError: The structured answer did not decode; the raw
                text is on ``raw_text``.

        Example:
            async with LanguageModel.from_host(Host.from_env()) as lm:
                session = lm.make_session(instructions="Be brief.")
                city = await session.respond("Capital of France?", generating=City)
        """
        if generating is not None:
            validate_structured_type(generating, role="generating")

        model = (options.model if options else None) or self.model or DEFAULT_MODEL

        async with self._lock:
            schema = None
            if generating is not None:
                try:
                    schema = schema_for(generating)
                except CodingError as e:
                    self._transcript.append(ErrorEntry(e))
                    logger.warning("Schema inference for %r failed: %s", generating, e)
                    raise

            self._transcript.append(Prompt(prompt))
            message = await self._loop.run(
                self._transcript,
                self._tools,
                model=model,
                options=options,
                response_format=JSON_OBJECT_FORMAT if schema is not None else None,
                schema=schema,
            )
            self._transcript.append(Response(message))

            text = message.content or ""
            if generating is None:
                return text
            try:
                return decode_json(generating, unwrap_json_fence(text))
            except CodingError as e:
                name = getattr(generating, "__name__", repr(generating))
                error = SchemaDecodeError(
                    f"Response did not decode into {name}: {e}",
                    raw_text=text,
                    hint="Inspect raw_text; the model may have ignored the schema.",
                )
                self._transcript.append(ErrorEntry(error))
                logger.warning("Structured decode into %s failed: %s", name, e)
                raise error from e


class LanguageModel:
    """Entry point that binds a transport and hands out sessions.

    Example:
        async with LanguageModel.from_host(Host.local("http://localhost:8080")) as lm:
            session = lm.make_session(instructions="You are terse.")
            print(await session.respond("Hello"))
    """

    def __init__(
        self, transport: Transport, *, default_model: str | None = None
    ) -> None:
        """Initialize with a transport and the model sessions default to."""
        self._transport = transport
        self.default_model = default_model

    @classmethod
    def from_host(cls, host: Host) -> LanguageModel:
        """Build an HTTP-backed model, or a mock one when ``host.use_mock``."""
        transport: Transport = MockTransport() if host.use_mock else HttpTransport(host)
        logger.debug("Created %s for %s", type(transport).__name__, host)
        return cls(transport, default_model=host.default_model)

    @property
    def transport(self) -> Transport:
        return self._transport

    def make_session(
        self,
        instructions: str | None = None,
        tools: Iterable[Tool] = (),
    ) -> Session:
        return Session(
            self._transport,
            model=self.default_model,
            instructions=instructions,
            tools=tools,
        )

    async def aclose(self) -> None:
        """Release the transport's resources, if it holds any."""
        close = getattr(self._transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
