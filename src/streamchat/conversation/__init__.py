"""Conversation module for streamchat.

Module structure (each module hides a design decision):
- models.py: message, status and snapshot representation
- log.py: ordering and in-place update rules of the message log
- turn.py: resources owned by one in-flight request
- engine.py: turn orchestration (auth, transport, decoding, cancellation)
"""

from .engine import ConversationEngine
from .log import MessageLog
from .models import ConversationSnapshot, Message, MessageStatus, Role, TurnState
from .turn import AbortReason, ActiveTurn

__all__ = [
    "AbortReason",
    "ActiveTurn",
    "ConversationEngine",
    "ConversationSnapshot",
    "Message",
    "MessageLog",
    "MessageStatus",
    "Role",
    "TurnState",
]
