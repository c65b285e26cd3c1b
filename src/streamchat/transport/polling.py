"""Transport that waits for the complete reply in a single response."""

from collections.abc import AsyncIterator

import httpx

from ..credentials.models import Credential
from ..errors import TransportError
from .base import ChatTransport, raise_for_status


class PollingTransport(ChatTransport):
    """Long-poll: one request, the full body is decoded once at the end.

    Useful behind proxies that buffer streamed responses anyway.
    """

    @property
    def cumulative(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "polling"

    async def stream(self, message: str, credential: Credential) -> AsyncIterator[str]:
        parts = self._client.chat_request_parts(message, credential)
        try:
            response = await self._client.http.request(**parts)
        except httpx.HTTPError as e:
            raise TransportError(f"Network error occurred: {e}") from e
        await raise_for_status(response)
        yield response.text
