"""Transcript tests: append-only history and its provider projection."""

from __future__ import annotations

import pytest

from parley.errors import ToolExecutionError
from parley.models import Message, ToolCall
from parley.transcript import (
    ErrorEntry,
    Instructions,
    Prompt,
    Response,
    ToolResult,
    Transcript,
)

pytestmark = pytest.mark.unit


def _full_transcript() -> Transcript:
    transcript = Transcript("Be brief.")
    transcript.extend(
        [
            Prompt("weather?"),
            Response(Message(tool_calls=(ToolCall("c1", "get_weather", '{"city": "Oslo"}'),))),
            ErrorEntry(ToolExecutionError("boom", tool_name="get_weather")),
            ToolResult("c1", "get_weather", '{"error": "boom"}'),
            Response(Message(content="It is unknown.")),
        ]
    )
    return transcript


def test_render_is_pure() -> None:
    transcript = _full_transcript()

    assert transcript.render() == transcript.render()
    assert len(transcript) == 6


def test_render_maps_each_entry_kind_and_skips_errors() -> None:
    messages = _full_transcript().render()

    assert [m.role for m in messages] == ["system", "user", "assistant", "tool", "assistant"]
    assert messages[0].content == "Be brief."
    tool_request = messages[2]
    assert tool_request.content is None
    assert tool_request.tool_calls is not None
    assert tool_request.tool_calls[0].function.name == "get_weather"
    assert messages[3].tool_call_id == "c1"
    assert messages[4].tool_calls is None


def test_tool_request_renders_to_the_wire_shape() -> None:
    messages = _full_transcript().render()

    assert messages[2].model_dump(exclude_none=True) == {
        "role": "assistant",
        "tool_calls": [
            {
                "id": "c1",
                "type": "function",
                "function": {"name": "get_weather", "arguments": '{"city": "Oslo"}'},
            }
        ],
    }


def test_views_reflect_entries_in_order() -> None:
    transcript = _full_transcript()

    assert isinstance(transcript.entries[0], Instructions)
    assert [type(e).__name__ for e in transcript] == [
        "Instructions",
        "Prompt",
        "Response",
        "ErrorEntry",
        "ToolResult",
        "Response",
    ]
    [error] = transcript.errors
    assert isinstance(error, ToolExecutionError)
    assert transcript.last_response == Message(content="It is unknown.")


def test_entries_is_a_snapshot() -> None:
    transcript = Transcript()
    snapshot = transcript.entries

    transcript.append(Prompt("later"))

    assert snapshot == ()
    assert transcript.entries == (Prompt("later"),)
    assert transcript.last_response is None


def test_empty_transcript_renders_nothing() -> None:
    assert Transcript().render() == []
