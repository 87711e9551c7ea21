"""Transport protocol: the single seam between the loop and the network."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from parley.providers.wire import ChatCompletionRequest, ChatCompletionResponse


@runtime_checkable
class Transport(Protocol):
    """Deliver one chat-completion request and return the provider's reply.

    Implementations raise ``TransportError`` for delivery failures and own any
    timeout policy. They must let ``asyncio.CancelledError`` propagate.
    """

    async def send(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Send *request* and return the parsed response."""
        ...
