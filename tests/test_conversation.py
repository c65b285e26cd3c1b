"""Unit tests for conversation models and the message log."""
import pytest

from streamchat.conversation import (
    ConversationSnapshot,
    Message,
    MessageLog,
    MessageStatus,
    Role,
    TurnState,
)


def streaming_reply() -> Message:
    return Message(role=Role.ASSISTANT, status=MessageStatus.STREAMING)


class TestMessage:
    """Tests for Message lifecycle rules."""

    def test_defaults(self):
        message = Message(role=Role.USER)

        assert message.content == ""
        assert message.status is MessageStatus.PENDING
        assert message.error is None
        assert not message.stopped_by_user
        assert message.created_at.tzinfo is not None

    def test_ids_are_unique(self):
        assert Message(role=Role.USER).id != Message(role=Role.USER).id

    def test_append_concatenates(self):
        message = streaming_reply()
        message.append("Hi")
        message.append(" there")

        assert message.content == "Hi there"
        assert message.status is MessageStatus.STREAMING

    def test_append_moves_pending_to_streaming(self):
        message = Message(role=Role.ASSISTANT)
        message.append("x")

        assert message.status is MessageStatus.STREAMING

    @pytest.mark.parametrize("status", [MessageStatus.COMPLETE, MessageStatus.ERRORED,
                                        MessageStatus.CANCELLED])
    def test_terminal_message_is_frozen(self, status):
        message = streaming_reply()
        message.settle(status)

        with pytest.raises(ValueError):
            message.append("late")
        with pytest.raises(ValueError):
            message.settle(MessageStatus.COMPLETE)

    def test_settle_replaces_content_when_given(self):
        message = streaming_reply()
        message.append("partial")
        message.settle(MessageStatus.ERRORED, content="Error:insufficient funds", error="insufficient funds")

        assert message.content == "Error:insufficient funds"
        assert message.error == "insufficient funds"

    def test_settle_keeps_content_by_default(self):
        message = streaming_reply()
        message.append("partial")
        message.settle(MessageStatus.COMPLETE, stopped_by_user=True)

        assert message.content == "partial"
        assert message.stopped_by_user

    def test_settle_requires_terminal_status(self):
        with pytest.raises(ValueError, match="not a terminal status"):
            streaming_reply().settle(MessageStatus.STREAMING)

    def test_role_is_immutable(self):
        message = Message(role=Role.USER)

        with pytest.raises(Exception):
            message.role = Role.ASSISTANT


class TestStatusEnums:
    """Tests for terminal-state helpers."""

    def test_message_status_terminal_set(self):
        terminal = {s for s in MessageStatus if s.is_terminal}
        assert terminal == {MessageStatus.COMPLETE, MessageStatus.ERRORED, MessageStatus.CANCELLED}

    def test_turn_state_terminal_set(self):
        terminal = {s for s in TurnState if s.is_terminal}
        assert terminal == {TurnState.COMPLETED, TurnState.ERRORED, TurnState.CANCELLED}


class TestMessageLog:
    """Tests for MessageLog ordering and the single-streaming rule."""

    def test_preserves_order(self):
        log = MessageLog()
        first = Message(role=Role.USER, content="a", status=MessageStatus.COMPLETE)
        second = streaming_reply()
        log.append(first)
        log.append(second)

        assert [m.id for m in log] == [first.id, second.id]
        assert len(log) == 2
        assert log.last.id == second.id

    def test_rejects_second_streaming_message(self):
        log = MessageLog()
        log.append(streaming_reply())

        with pytest.raises(ValueError, match="already streaming"):
            log.append(streaming_reply())

    def test_accepts_streaming_message_after_previous_settles(self):
        log = MessageLog()
        first = streaming_reply()
        log.append(first)
        log.settle_last(first.id, MessageStatus.COMPLETE)

        log.append(streaming_reply())

        assert log.streaming() is log.last

    def test_extend_last_targets_last_message_only(self):
        log = MessageLog()
        first = Message(role=Role.USER, content="q", status=MessageStatus.COMPLETE)
        reply = streaming_reply()
        log.append(first)
        log.append(reply)

        log.extend_last(reply.id, "answer")
        with pytest.raises(KeyError):
            log.extend_last(first.id, "nope")

        assert log.last.content == "answer"

    def test_snapshot_is_detached(self):
        log = MessageLog()
        reply = streaming_reply()
        log.append(reply)

        before = log.snapshot()
        log.extend_last(reply.id, "more")

        assert before[0].content == ""
        assert log.snapshot()[0].content == "more"

    def test_empty_log(self):
        log = MessageLog()

        assert log.last is None
        assert log.streaming() is None
        assert log.snapshot() == ()


class TestConversationSnapshot:
    """Tests for ConversationSnapshot."""

    def test_last(self):
        message = Message(role=Role.USER, content="hi")
        snapshot = ConversationSnapshot(messages=(message,), state=TurnState.IDLE)

        assert snapshot.last is message
        assert not snapshot.thinking

    def test_last_of_empty(self):
        assert ConversationSnapshot(messages=(), state=TurnState.IDLE).last is None
