"""The adaptive completion loop.

One ``CompletionLoop.run`` call drives request/response rounds until the
provider produces a final text answer:

- tool calls are executed (in provider order) and fed back, after which tools
  are withdrawn so the next round has to answer;
- a rejected request that forced JSON mode is treated as a capability probe:
  JSON mode is dropped once and the schema stays in the prompt. Any other
  transport failure is fatal;
- anything else that is not a usable answer is a fatal ``GenerationError``.

Capability flags live in an immutable ``LoopState`` that each transition
replaces, so the state machine can be exercised without a transport.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
import json
import logging
from typing import TYPE_CHECKING, Any

from parley.errors import (
    MaxIterationsExceededError,
    ToolNotFoundError,
    TransportError,
    UnexpectedResponseError,
)
from parley.options import GenerationOptions
from parley.providers.wire import ChatCompletionRequest, ChatMessage
from parley.tools import ToolInvoker
from parley.transcript import ErrorEntry, Response

if TYPE_CHECKING:
    from parley.models import Message
    from parley.providers.base import Transport
    from parley.providers.wire import ResponseFormat
    from parley.tools import ToolRegistry
    from parley.transcript import Entry, Transcript

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 10

#: Marker of a tool-guidance block in session instructions.
TOOL_USAGE_MARKER = "TOOL USAGE:"

_JSON_DIRECTIVE = (
    "You are a helpful assistant designed to output JSON. You must respond with "
    "valid JSON that matches the following schema:\n"
)


@dataclass(frozen=True)
class LoopState:
    """Per-call capability flags; every transition returns a new state."""

    iteration: int = 0
    tools_completed: bool = False
    tools_disabled: bool = False
    response_format_disabled: bool = False

    def next_iteration(self) -> LoopState:
        return replace(self, iteration=self.iteration + 1)

    def after_tool_calls(self) -> LoopState:
        return replace(self, tools_completed=True)

    def without_response_format(self) -> LoopState:
        return replace(self, response_format_disabled=True)

    def offers_tools(self, registry_size: int) -> bool:
        """Whether this round should advertise tools."""
        return not (self.tools_completed or self.tools_disabled or registry_size == 0)

    def allows_response_format(self, *, tools_offered: bool) -> bool:
        """Whether this round may force JSON mode.

        Providers reject tool calling combined with forced JSON mode.
        """
        return not tools_offered and not self.response_format_disabled

    def describe(self) -> str:
        return (
            f"tools_completed={self.tools_completed}, "
            f"tools_disabled={self.tools_disabled}, "
            f"response_format_disabled={self.response_format_disabled}"
        )


def strip_tool_usage(text: str) -> str:
    """Remove a ``TOOL USAGE:`` block (up to the next blank line) from *text*."""
    start = text.find(TOOL_USAGE_MARKER)
    if start == -1:
        return text
    end = text.find("\n\n", start + len(TOOL_USAGE_MARKER))
    cleaned = text[:start] if end == -1 else text[:start] + text[end + 2 :]
    return cleaned.strip()


def render_messages(
    transcript: Transcript,
    *,
    schema_text: str | None,
    tools_offered: bool,
) -> list[ChatMessage]:
    """Render the transcript, merging the JSON schema directive when given."""
    messages = transcript.render()
    if schema_text is None:
        return messages

    directive = _JSON_DIRECTIVE + schema_text
    index = next((i for i, m in enumerate(messages) if m.role == "system"), None)
    if index is None:
        return [ChatMessage(role="system", content=directive), *messages]

    content = messages[index].content or ""
    if not tools_offered:
        content = strip_tool_usage(content)
    merged = f"{content}\n\n{directive}" if content.strip() else directive
    messages[index] = messages[index].model_copy(update={"content": merged})
    return messages


class CompletionLoop:
    """Drive one completion to a final answer over a ``Transport``."""

    def __init__(
        self, transport: Transport, *, max_iterations: int = MAX_ITERATIONS
    ) -> None:
        """Initialize with the transport and the iteration ceiling."""
        self._transport = transport
        self.max_iterations = max_iterations

    async def run(
        self,
        transcript: Transcript,
        tools: ToolRegistry,
        *,
        model: str,
        options: GenerationOptions | None = None,
        response_format: ResponseFormat | None = None,
        schema: dict[str, Any] | None = None,
    ) -> Message:
        """Run rounds until the provider returns usable text.

        Tool-call rounds are appended to *transcript* as they complete. The
        final message is returned, not appended; the caller decides how to
        record it.

        Raises:
            TransportError: Delivery failed, other than a JSON-mode rejection.
            ToolNotFoundError: The provider called an unregistered tool.
            UnexpectedResponseError: The provider returned no usable answer.
            MaxIterationsExceededError: No answer within ``max_iterations``.
        """
        try:
            return await self._run(
                transcript,
                tools,
                model=model,
                options=options or GenerationOptions(),
                response_format=response_format,
                schema=schema,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            transcript.append(ErrorEntry(e))
            raise

    async def _run(
        self,
        transcript: Transcript,
        tools: ToolRegistry,
        *,
        model: str,
        options: GenerationOptions,
        response_format: ResponseFormat | None,
        schema: dict[str, Any] | None,
    ) -> Message:
        invoker = ToolInvoker(tools)
        schema_text = json.dumps(schema, indent=2) if schema is not None else None
        state = LoopState()

        while state.iteration < self.max_iterations:
            state = state.next_iteration()

            tools_offered = state.offers_tools(len(tools))
            effective_format = (
                response_format
                if state.allows_response_format(tools_offered=tools_offered)
                else None
            )
            messages = render_messages(
                transcript, schema_text=schema_text, tools_offered=tools_offered
            )
            request = ChatCompletionRequest(
                model=model,
                messages=messages,
                tools=tools.definitions() if tools_offered else None,
                tool_choice="auto" if tools_offered else None,
                response_format=effective_format,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
            logger.debug(
                "Iteration %d tools=%d response_format=%s messages=%d %s",
                state.iteration,
                len(tools) if tools_offered else 0,
                effective_format.type if effective_format is not None else "none",
                len(messages),
                state.describe(),
            )

            try:
                response = await self._transport.send(request)
            except TransportError as e:
                if not e.is_rejected_request:
                    raise
                if effective_format is not None and not state.response_format_disabled:
                    logger.info(
                        "Request rejected with response_format; retrying with the "
                        "schema in the prompt only (status=%s)",
                        e.status_code,
                    )
                    state = state.without_response_format()
                    continue
                raise

            if not response.choices:
                raise UnexpectedResponseError(
                    "No choices returned from the model",
                    iteration=state.iteration,
                )
            choice = response.choices[0]
            message = choice.message.to_message()
            finish_reason = choice.finish_reason or "unknown"
            logger.debug(
                "Iteration %d finish_reason=%s content_chars=%d tool_calls=%s",
                state.iteration,
                finish_reason,
                len(message.content or ""),
                [tc.name for tc in message.tool_calls],
            )

            if message.has_tool_calls:
                if not tools_offered:
                    logger.warning(
                        "Model requested %d tool call(s) after tools were withdrawn; "
                        "executing them anyway",
                        len(message.tool_calls),
                    )
                await self._resolve_tool_calls(transcript, invoker, message)
                state = state.after_tool_calls()
                continue

            if message.has_usable_content:
                return message

            if tools_offered:
                raise UnexpectedResponseError(
                    "Model returned an empty response when tools were available. "
                    "The model may not support tool calling. "
                    f"Finish reason: {finish_reason}.",
                    hint="Try without tools or choose a model with tool-calling support.",
                    finish_reason=finish_reason,
                    iteration=state.iteration,
                )

            raise UnexpectedResponseError(
                f"Response contained no content after {state.iteration} "
                f"iteration(s) ({state.describe()}, "
                f"response_format_requested={response_format is not None}, "
                f"finish_reason={finish_reason})",
                hint=(
                    "The model hit its token limit; raise max_tokens."
                    if finish_reason == "length"
                    else None
                ),
                finish_reason=finish_reason,
                iteration=state.iteration,
            )

        raise MaxIterationsExceededError(
            f"Exceeded maximum iterations ({self.max_iterations}). "
            "The model may be stuck in a tool-calling loop.",
            hint="Check that tool results give the model what it needs to answer.",
        )

    async def _resolve_tool_calls(
        self, transcript: Transcript, invoker: ToolInvoker, message: Message
    ) -> None:
        """Run every tool call in order, then commit the round to the transcript."""
        pending: list[Entry] = [Response(message)]
        try:
            for call in message.tool_calls:
                logger.debug("Executing tool %s call_id=%s", call.name, call.id)
                pending.extend(await invoker.invoke(call))
        except ToolNotFoundError:
            transcript.extend(pending)
            raise
        transcript.extend(pending)
