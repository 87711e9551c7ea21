"""Transcript: the append-only history of one conversation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, assert_never

from parley.providers.wire import ChatMessage

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from parley.models import Message


@dataclass(frozen=True)
class Instructions:
    """Session-level guidance, rendered as a system message."""

    text: str


@dataclass(frozen=True)
class Prompt:
    """User input, rendered as a user message."""

    text: str


@dataclass(frozen=True)
class Response:
    """A whole assistant turn: a final answer or a tool-call request."""

    message: Message


@dataclass(frozen=True)
class ToolResult:
    """Output of one tool call, correlated to the request by ``call_id``."""

    call_id: str
    tool_name: str
    output: str


@dataclass(frozen=True)
class ErrorEntry:
    """A failure kept for diagnosis; never sent to the provider."""

    error: BaseException


Entry = Instructions | Prompt | Response | ToolResult | ErrorEntry


class Transcript:
    """Ordered record of a conversation.

    Entries are only ever appended; nothing is removed or reordered.
    """

    def __init__(self, instructions: str | None = None) -> None:
        """Start a transcript, optionally seeded with instructions."""
        self._entries: list[Entry] = []
        if instructions is not None:
            self._entries.append(Instructions(instructions))

    def append(self, entry: Entry) -> None:
        self._entries.append(entry)

    def extend(self, entries: Iterable[Entry]) -> None:
        self._entries.extend(entries)

    @property
    def entries(self) -> tuple[Entry, ...]:
        """Snapshot of every entry in order."""
        return tuple(self._entries)

    @property
    def errors(self) -> tuple[BaseException, ...]:
        return tuple(e.error for e in self._entries if isinstance(e, ErrorEntry))

    @property
    def last_response(self) -> Message | None:
        for entry in reversed(self._entries):
            if isinstance(entry, Response):
                return entry.message
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(tuple(self._entries))

    def render(self) -> list[ChatMessage]:
        """Project the entries into provider messages.

        Pure: the same transcript always renders to the same list. Error
        entries are dropped.
        """
        messages: list[ChatMessage] = []
        for entry in self._entries:
            match entry:
                case Instructions(text=text):
                    messages.append(ChatMessage(role="system", content=text))
                case Prompt(text=text):
                    messages.append(ChatMessage(role="user", content=text))
                case Response(message=message):
                    messages.append(ChatMessage.from_message(message))
                case ToolResult(call_id=call_id, output=output):
                    messages.append(
                        ChatMessage(role="tool", content=output, tool_call_id=call_id)
                    )
                case ErrorEntry():
                    pass
                case _:
                    assert_never(entry)
        return messages
