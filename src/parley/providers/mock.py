"""Mock transport for offline use."""

from __future__ import annotations

from parley.providers.wire import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
)


class MockTransport:
    """Transport that answers without network calls.

    Echoes the latest user message. When JSON mode is requested it answers
    with an empty JSON object so structured calls stay parseable.
    """

    def __init__(self) -> None:
        self.requests: list[ChatCompletionRequest] = []

    async def send(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Return a deterministic mock completion."""
        self.requests.append(request)
        if request.response_format is not None:
            text = "{}"
        else:
            prompt = next(
                (
                    m.content
                    for m in reversed(request.messages)
                    if m.role == "user" and m.content
                ),
                "",
            )
            text = f"echo: {prompt[:100]}"
        return ChatCompletionResponse(
            choices=[
                Choice(
                    message=ChatMessage(role="assistant", content=text),
                    finish_reason="stop",
                )
            ]
        )
