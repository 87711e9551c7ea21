"""Wire models for the OpenAI-compatible chat-completions endpoint.

Requests are serialized with ``to_payload()`` (null fields omitted); responses
are validated on the way in so malformed payloads fail at the boundary.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from parley.models import Message, ToolCall


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class FunctionCall(_WireModel):
    name: str
    #: JSON text produced by the model; decoded separately.
    arguments: str = "{}"


class ToolCallPayload(_WireModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall

    @classmethod
    def from_tool_call(cls, call: ToolCall) -> ToolCallPayload:
        return cls(
            id=call.id,
            function=FunctionCall(name=call.name, arguments=call.arguments),
        )

    def to_tool_call(self) -> ToolCall:
        return ToolCall(
            id=self.id, name=self.function.name, arguments=self.function.arguments
        )


class ChatMessage(_WireModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str | None = None
    tool_calls: list[ToolCallPayload] | None = None
    tool_call_id: str | None = None

    @classmethod
    def from_message(cls, message: Message) -> ChatMessage:
        """Project an assistant ``Message`` back into wire form."""
        tool_calls = (
            [ToolCallPayload.from_tool_call(tc) for tc in message.tool_calls]
            if message.tool_calls
            else None
        )
        return cls(role="assistant", content=message.content, tool_calls=tool_calls)

    def to_message(self) -> Message:
        return Message(
            content=self.content,
            tool_calls=tuple(tc.to_tool_call() for tc in self.tool_calls or ()),
        )


class FunctionDefinition(_WireModel):
    name: str
    description: str
    parameters: dict[str, Any]


class ToolDefinition(_WireModel):
    type: Literal["function"] = "function"
    function: FunctionDefinition


class ResponseFormat(_WireModel):
    type: Literal["json_object"] = "json_object"


JSON_OBJECT_FORMAT = ResponseFormat()


class ChatCompletionRequest(_WireModel):
    model: str
    messages: list[ChatMessage]
    tools: list[ToolDefinition] | None = None
    tool_choice: Literal["auto", "none", "required"] | None = None
    response_format: ResponseFormat | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Choice(_WireModel):
    message: ChatMessage
    #: "stop", "tool_calls", "length", ...
    finish_reason: str | None = None


class ChatCompletionResponse(_WireModel):
    choices: list[Choice] = Field(default_factory=list)
