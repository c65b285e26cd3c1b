"""Abstract base class for reply transports.

This module hides the design decision of how reply bytes reach the client.
Implementations must handle:
- Opening the request with the bearer credential attached
- Mapping network failures and non-2xx statuses to TransportError
- Releasing the connection when iteration stops early
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

import httpx

from ..client import BackendClient
from ..credentials.models import Credential
from ..errors import TransportError


class ChatTransport(ABC):
    """Delivers the reply of one chat request as text.

    ``stream`` is an async generator. Closing it (or cancelling the task
    iterating it) aborts the underlying request.
    """

    def __init__(self, client: BackendClient):
        self._client = client

    @property
    @abstractmethod
    def cumulative(self) -> bool:
        """True if each yielded string is the whole reply so far rather than an increment."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport identifier used in configuration."""

    @abstractmethod
    def stream(self, message: str, credential: Credential) -> AsyncIterator[str]:
        """Send ``message`` and yield reply text as it arrives.

        Raises:
            TransportError: On network failure or a non-2xx response
        """


async def raise_for_status(response: httpx.Response) -> None:
    """Turn a non-2xx chat response into TransportError."""
    if response.is_success:
        return
    await response.aread()
    raise TransportError(
        f"HTTP error! status: {response.status_code}",
        status_code=response.status_code,
    )
