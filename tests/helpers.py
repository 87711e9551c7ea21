"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off transport classes as coverage expands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any

from parley.errors import TransportError, TransportErrorKind
from parley.providers.wire import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    FunctionCall,
    ToolCallPayload,
)


def text_reply(content: str | None, finish_reason: str = "stop") -> ChatCompletionResponse:
    """A completion whose first choice carries *content*."""
    return ChatCompletionResponse(
        choices=[
            Choice(
                message=ChatMessage(role="assistant", content=content),
                finish_reason=finish_reason,
            )
        ]
    )


def tool_reply(*calls: tuple[str, str, Any]) -> ChatCompletionResponse:
    """A completion requesting ``(call_id, tool_name, arguments)`` tool calls.

    Non-string arguments are JSON-encoded.
    """
    payloads = [
        ToolCallPayload(
            id=call_id,
            function=FunctionCall(
                name=name,
                arguments=args if isinstance(args, str) else json.dumps(args),
            ),
        )
        for call_id, name, args in calls
    ]
    return ChatCompletionResponse(
        choices=[
            Choice(
                message=ChatMessage(role="assistant", tool_calls=payloads),
                finish_reason="tool_calls",
            )
        ]
    )


def rejected(status_code: int = 400) -> TransportError:
    return TransportError(
        f"Provider returned HTTP {status_code}",
        kind=TransportErrorKind.REJECTED_REQUEST,
        status_code=status_code,
    )


@dataclass
class ScriptedTransport:
    """Transport that returns a scripted sequence of responses/exceptions.

    Every request is captured for assertions. When the script runs out the
    transport answers ``"ok"``.
    """

    script: list[ChatCompletionResponse | BaseException] = field(
        default_factory=list
    )
    requests: list[ChatCompletionRequest] = field(default_factory=list)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last_request(self) -> ChatCompletionRequest:
        return self.requests[-1]

    async def send(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        self.requests.append(request)
        if not self.script:
            return text_reply("ok")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@dataclass
class LoopingToolTransport:
    """Transport that asks for the same tool on every request."""

    tool_name: str
    arguments: str = "{}"
    requests: list[ChatCompletionRequest] = field(default_factory=list)

    async def send(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        self.requests.append(request)
        return tool_reply((f"call_{len(self.requests)}", self.tool_name, self.arguments))
