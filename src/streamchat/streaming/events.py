"""Events emitted by the stream decoder."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Delta:
    """A fragment of assistant reply text."""

    text: str


@dataclass(frozen=True)
class StatusMarker:
    """Non-content control signal, e.g. "processing"."""

    name: str


@dataclass(frozen=True)
class Done:
    """The reply is complete; nothing follows."""


@dataclass(frozen=True)
class ErrorMarker:
    """The backend reported an in-band error; nothing follows."""

    message: str


DecodedEvent = Delta | StatusMarker | Done | ErrorMarker

TERMINAL_EVENTS = (Done, ErrorMarker)
