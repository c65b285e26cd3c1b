"""Reply stream decoding module for streamchat.

Turns the growing text of a /chat response into discrete events.
"""

from .decoder import StreamDecoder
from .events import DecodedEvent, Delta, Done, ErrorMarker, StatusMarker

__all__ = [
    "DecodedEvent",
    "Delta",
    "Done",
    "ErrorMarker",
    "StatusMarker",
    "StreamDecoder",
]
