"""Ordered message log.

Messages are only ever appended; the one exception to immutability is the
last message, which the engine updates in place while it streams.
"""

from collections.abc import Iterator

from .models import Message, MessageStatus


class MessageLog:
    """Append-only sequence of messages, owned by the conversation engine."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def streaming(self) -> Message | None:
        """The message currently streaming, if any."""
        for message in reversed(self._messages):
            if message.status is MessageStatus.STREAMING:
                return message
        return None

    def append(self, message: Message) -> None:
        """Add a message at the end.

        Raises:
            ValueError: If ``message`` is streaming while another one already is
        """
        if message.status is MessageStatus.STREAMING and self.streaming() is not None:
            raise ValueError("Another message is already streaming")
        self._messages.append(message)

    def extend_last(self, message_id: str, text: str) -> None:
        """Append ``text`` to the last message, which must be ``message_id``."""
        self._last_with_id(message_id).append(text)

    def settle_last(
        self,
        message_id: str,
        status: MessageStatus,
        content: str | None = None,
        error: str | None = None,
        stopped_by_user: bool = False,
    ) -> None:
        """Finalize the last message, which must be ``message_id``."""
        self._last_with_id(message_id).settle(
            status, content=content, error=error, stopped_by_user=stopped_by_user
        )

    def snapshot(self) -> tuple[Message, ...]:
        """Detached copies of all messages in conversation order."""
        return tuple(message.model_copy() for message in self._messages)

    def _last_with_id(self, message_id: str) -> Message:
        last = self.last
        if last is None or last.id != message_id:
            raise KeyError(f"Message {message_id} is not the last message in the log")
        return last
