"""Factory for creating reply transports."""

from ..client import BackendClient
from ..config import TransportKind
from .base import ChatTransport
from .polling import PollingTransport
from .streaming import ChunkedTransport, ProgressiveTransport


def create_transport(kind: str | TransportKind, client: BackendClient) -> ChatTransport:
    """Create a transport instance.

    Args:
        kind: Transport type ('chunked', 'progressive', 'polling')
        client: Backend client whose httpx session the transport uses

    Returns:
        Initialized transport

    Raises:
        ValueError: If transport type is not supported

    Examples:
        >>> transport = create_transport("chunked", BackendClient("http://localhost:8080"))
    """
    kind_value = kind.value if isinstance(kind, TransportKind) else str(kind).lower()

    if kind_value == TransportKind.CHUNKED.value:
        return ChunkedTransport(client)

    if kind_value == TransportKind.PROGRESSIVE.value:
        return ProgressiveTransport(client)

    if kind_value == TransportKind.POLLING.value:
        return PollingTransport(client)

    raise ValueError(
        f"Unsupported transport: {kind}. "
        f"Supported transports: 'chunked', 'progressive', 'polling'"
    )
