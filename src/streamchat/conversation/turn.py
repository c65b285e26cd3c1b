"""Per-turn request state.

Everything that belongs to one in-flight request (task handle, decoder,
timeout) lives here and is dropped when the turn settles, so nothing from
a superseded request can touch the log later.
"""

import asyncio
from enum import Enum
from uuid import uuid4

from ..streaming import StreamDecoder
from .models import TurnState


class AbortReason(str, Enum):
    """Why a turn's request was aborted."""

    USER = "user"
    SUPERSEDED = "superseded"
    TIMEOUT = "timeout"


class ActiveTurn:
    """Handle on the turn currently owned by the engine."""

    def __init__(self, user_text: str, message_id: str):
        self.id = uuid4().hex
        self.user_text = user_text
        self.message_id = message_id
        self.state = TurnState.AUTHENTICATING
        self.decoder: StreamDecoder | None = StreamDecoder()
        self.task: asyncio.Task[None] | None = None
        self.abort_reason: AbortReason | None = None
        self.saw_delta = False
        self.saw_status = False
        self._timeout_handle: asyncio.TimerHandle | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def abort(self, reason: AbortReason) -> bool:
        """Cancel the request task; returns False if already aborted or settled."""
        if self.is_terminal or self.abort_reason is not None:
            return False
        self.abort_reason = reason
        if self.task is not None:
            self.task.cancel()
        return True

    def arm_timeout(self, seconds: float) -> None:
        """Abort the turn if it has not settled after ``seconds``."""
        loop = asyncio.get_running_loop()
        self._timeout_handle = loop.call_later(seconds, self.abort, AbortReason.TIMEOUT)

    def release(self) -> None:
        """Drop request resources once the turn is terminal."""
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        self.task = None
        self.decoder = None
