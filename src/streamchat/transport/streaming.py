"""Transports that read the reply progressively over one HTTP response."""

from collections.abc import AsyncIterator

import httpx

from ..credentials.models import Credential
from ..errors import TransportError
from .base import ChatTransport, raise_for_status


class ChunkedTransport(ChatTransport):
    """Yields each newly received piece of text (chunked transfer)."""

    @property
    def cumulative(self) -> bool:
        return False

    @property
    def name(self) -> str:
        return "chunked"

    async def stream(self, message: str, credential: Credential) -> AsyncIterator[str]:
        parts = self._client.chat_request_parts(message, credential)
        try:
            async with self._client.http.stream(**parts) as response:
                await raise_for_status(response)
                async for text in response.aiter_text():
                    yield text
        except httpx.HTTPError as e:
            raise TransportError(f"Network error occurred: {e}") from e


class ProgressiveTransport(ChatTransport):
    """Yields the whole response text received so far on every arrival.

    Mirrors clients whose HTTP layer only exposes the growing response body,
    so the decoder is re-run on the cumulative buffer.
    """

    @property
    def cumulative(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "progressive"

    async def stream(self, message: str, credential: Credential) -> AsyncIterator[str]:
        parts = self._client.chat_request_parts(message, credential)
        received = ""
        try:
            async with self._client.http.stream(**parts) as response:
                await raise_for_status(response)
                async for text in response.aiter_text():
                    received += text
                    yield received
        except httpx.HTTPError as e:
            raise TransportError(f"Network error occurred: {e}") from e
