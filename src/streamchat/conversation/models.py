"""Data models for the conversation log.

These models define the structure of a conversation independent of how it
is transported or rendered.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class MessageStatus(str, Enum):
    """Lifecycle of a message.

    pending -> streaming -> complete | errored | cancelled. The terminal
    states are final; content is frozen once one is reached.
    """

    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETE = "complete"
    ERRORED = "errored"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (MessageStatus.COMPLETE, MessageStatus.ERRORED, MessageStatus.CANCELLED)


class TurnState(str, Enum):
    """Lifecycle of the active turn inside the engine."""

    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TurnState.COMPLETED, TurnState.ERRORED, TurnState.CANCELLED)


class Message(BaseModel):
    """One conversational turn's message."""

    id: str = Field(default_factory=lambda: str(uuid4()), frozen=True)
    role: Role = Field(frozen=True)
    content: str = Field(default="", description="Append-only while streaming")
    status: MessageStatus = Field(default=MessageStatus.PENDING)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        frozen=True
    )
    error: str | None = Field(default=None, description="Why the message ended in error")
    stopped_by_user: bool = Field(default=False)

    def append(self, text: str) -> None:
        """Append streamed text.

        Raises:
            ValueError: If the message already reached a terminal status
        """
        if self.status.is_terminal:
            raise ValueError(f"Cannot append to {self.status.value} message {self.id}")
        self.status = MessageStatus.STREAMING
        self.content += text

    def settle(
        self,
        status: MessageStatus,
        content: str | None = None,
        error: str | None = None,
        stopped_by_user: bool = False,
    ) -> None:
        """Move to a terminal status, optionally replacing the content.

        Raises:
            ValueError: If the message is already terminal or ``status`` is not terminal
        """
        if self.status.is_terminal:
            raise ValueError(f"Message {self.id} is already {self.status.value}")
        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal status")
        if content is not None:
            self.content = content
        self.status = status
        self.error = error
        self.stopped_by_user = stopped_by_user


@dataclass(frozen=True)
class ConversationSnapshot:
    """Read-only view handed to observers after every change."""

    messages: tuple[Message, ...]
    state: TurnState
    thinking: bool = False

    @property
    def last(self) -> Message | None:
        return self.messages[-1] if self.messages else None
