"""Reply transport module for streamchat.

Each transport opens POST /chat and hands the reply text to the decoder in
its own delivery model; the conversation engine does not care which.
"""

from .base import ChatTransport
from .factory import create_transport
from .polling import PollingTransport
from .streaming import ChunkedTransport, ProgressiveTransport

__all__ = [
    "ChatTransport",
    "ChunkedTransport",
    "PollingTransport",
    "ProgressiveTransport",
    "create_transport",
]
