"""Incremental decoder for the event-stream style reply format.

The reply is a sequence of newline-delimited frames. Frames of the form
``data: <payload>`` carry meaning; everything else (blank separators,
comments, other SSE fields) is skipped. Payloads are one of:

- ``[DONE]``                      -> Done
- ``Error:...``                   -> ErrorMarker (whole payload as message)
- ``{"status": "processing"}``    -> StatusMarker("processing")
- ``{"response": "<fragment>"}``  -> Delta(fragment)

Unknown or malformed payloads are logged and dropped so that new backend
fields never abort a reply.
"""

import json
import logging

from ..config import DATA_PREFIX, DONE_SENTINEL, ERROR_SENTINEL, PROCESSING_STATUS
from ..errors import ProtocolError
from .events import TERMINAL_EVENTS, DecodedEvent, Delta, Done, ErrorMarker, StatusMarker

logger = logging.getLogger(__name__)


def decode_payload(payload: str) -> DecodedEvent:
    """Map one ``data:`` payload to an event.

    Raises:
        ProtocolError: If the payload is not a recognized shape
    """
    if payload == DONE_SENTINEL:
        return Done()
    if payload.startswith(ERROR_SENTINEL):
        return ErrorMarker(payload)

    try:
        parsed = json.loads(payload)
    except ValueError as e:
        raise ProtocolError(f"payload is not JSON: {e}", frame=payload) from e

    if not isinstance(parsed, dict):
        raise ProtocolError("payload is not an object", frame=payload)
    if parsed.get("status") == PROCESSING_STATUS:
        return StatusMarker(PROCESSING_STATUS)
    response = parsed.get("response")
    if isinstance(response, str):
        return Delta(response)
    raise ProtocolError("payload has neither a known status nor a text response", frame=payload)


class StreamDecoder:
    """Decodes one request's reply; create a new instance per request.

    Two delivery models are supported, pick one per request:

    - ``feed(snapshot)`` takes the whole response text received so far.
      Calling it again with a longer snapshot only decodes the new part.
    - ``feed_chunk(text)`` takes just the newly arrived text.

    A trailing line without a terminator is held back until its newline
    arrives, or until ``flush()`` is called at end of stream.
    """

    def __init__(self) -> None:
        self._consumed_offset = 0
        self._pending = ""
        self._finished = False
        self._dropped_frames = 0

    @property
    def consumed_offset(self) -> int:
        """Characters of the reply already decoded."""
        return self._consumed_offset

    @property
    def finished(self) -> bool:
        """True once Done or ErrorMarker has been emitted."""
        return self._finished

    @property
    def dropped_frames(self) -> int:
        """Number of data frames discarded as unrecognized."""
        return self._dropped_frames

    def feed(self, snapshot: str) -> list[DecodedEvent]:
        """Decode complete lines of ``snapshot`` beyond the consumed offset."""
        if self._finished or len(snapshot) <= self._consumed_offset:
            return []
        return self._consume(snapshot[self._consumed_offset:])[0]

    def feed_chunk(self, text: str) -> list[DecodedEvent]:
        """Decode newly arrived ``text`` appended to what came before."""
        if self._finished or not text:
            return []
        events, self._pending = self._consume(self._pending + text)
        return events

    def flush(self, snapshot: str | None = None) -> list[DecodedEvent]:
        """Decode a final unterminated line once the stream has ended.

        Args:
            snapshot: Full response text for the cumulative model; omit it
                when ``feed_chunk`` was used
        """
        if snapshot is not None:
            events = self.feed(snapshot)
            remainder = snapshot[self._consumed_offset:]
        else:
            events = []
            remainder, self._pending = self._pending, ""
        self._consumed_offset += len(remainder)
        if remainder and not self._finished:
            events.extend(self._decode_lines([remainder]))
        return events

    def _consume(self, unread: str) -> tuple[list[DecodedEvent], str]:
        """Decode the terminated lines of ``unread``; return the leftover tail."""
        end = unread.rfind("\n")
        if end == -1:
            return [], unread
        self._consumed_offset += end + 1
        return self._decode_lines(unread[:end].split("\n")), unread[end + 1:]

    def _decode_lines(self, lines: list[str]) -> list[DecodedEvent]:
        events: list[DecodedEvent] = []
        for line in lines:
            if self._finished:
                break
            event = self._decode_line(line.rstrip("\r"))
            if event is None:
                continue
            events.append(event)
            if isinstance(event, TERMINAL_EVENTS):
                self._finished = True
        return events

    def _decode_line(self, line: str) -> DecodedEvent | None:
        if not line.startswith(DATA_PREFIX):
            return None
        payload = line[len(DATA_PREFIX):]
        if payload.startswith(" "):
            payload = payload[1:]
        try:
            return decode_payload(payload)
        except ProtocolError as e:
            self._dropped_frames += 1
            logger.warning("Dropping frame: %s (%r)", e, e.frame)
            return None
