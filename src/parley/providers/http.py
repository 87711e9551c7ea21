"""HTTP transport for OpenAI-compatible chat-completions endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from parley.errors import UnexpectedResponseError
from parley.providers._errors import status_error, wrap_transport_error
from parley.providers.wire import ChatCompletionRequest, ChatCompletionResponse

if TYPE_CHECKING:
    from types import TracebackType

    from parley.config import Host

logger = logging.getLogger(__name__)


class HttpTransport:
    """POST requests to ``{base_url}/v1/chat/completions`` with httpx."""

    def __init__(self, host: Host, *, client: httpx.AsyncClient | None = None) -> None:
        """Initialize for *host*; pass *client* to share or stub the HTTP client."""
        self.host = host
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily initialize and return the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.host.timeout_s)
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.host.api_key:
            headers["Authorization"] = f"Bearer {self.host.api_key}"
        return headers

    async def send(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Send *request* and parse the completion."""
        client = self._get_client()
        payload = request.to_payload()
        logger.debug(
            "POST %s model=%s messages=%d tools=%d",
            self.host.chat_completions_url,
            request.model,
            len(request.messages),
            len(request.tools or ()),
        )

        try:
            response = await client.post(
                self.host.chat_completions_url,
                json=payload,
                headers=self._headers(),
            )
        except asyncio.CancelledError:
            raise
        except httpx.HTTPError as e:
            raise wrap_transport_error(e) from e

        if response.status_code >= 400:
            logger.debug(
                "Provider error status=%d body=%s",
                response.status_code,
                response.text[:500],
            )
            raise status_error(response.status_code, response.text)

        return _parse_completion(response)

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        client = self._client
        if client is None or not self._owns_client:
            return
        self._client = None
        await client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _parse_completion(response: httpx.Response) -> ChatCompletionResponse:
    try:
        data: Any = response.json()
    except ValueError as e:
        raise UnexpectedResponseError(
            "Provider returned a non-JSON body",
            hint="Check that base_url points at an OpenAI-compatible server.",
        ) from e
    try:
        return ChatCompletionResponse.model_validate(data)
    except ValidationError as e:
        raise UnexpectedResponseError(
            f"Provider response did not match the chat-completions shape: {e.error_count()} error(s)",
            hint=str(e),
        ) from e
