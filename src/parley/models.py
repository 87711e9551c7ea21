"""Domain models shared by the transcript, the loop, and the tool layer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by the model."""

    id: str
    name: str
    #: JSON text, decoded later against the tool's argument type.
    arguments: str


@dataclass(frozen=True)
class Message:
    """An assistant turn: text content, tool calls, or both.

    A message carrying tool calls must be resolved (one tool result per call)
    before the model can produce a final answer.
    """

    content: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @property
    def has_usable_content(self) -> bool:
        return self.content is not None and bool(self.content.strip())
