"""
Streamchat: a client-side engine for streamed assistant conversations.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .auth import SessionAuthenticator
from .client import BackendClient
from .config import BusyPolicy, ClientConfig, TransportKind
from .conversation import (
    ConversationEngine,
    ConversationSnapshot,
    Message,
    MessageLog,
    MessageStatus,
    Role,
    TurnState,
)
from .credentials import Credential, CredentialStore, create_credential_store
from .errors import (
    AuthenticationError,
    ProtocolError,
    StorageError,
    StreamChatError,
    TransportError,
)
from .streaming import StreamDecoder
from .transport import ChatTransport, create_transport

__all__ = [
    "AuthenticationError",
    "BackendClient",
    "BusyPolicy",
    "ChatTransport",
    "ClientConfig",
    "ConversationEngine",
    "ConversationSnapshot",
    "Credential",
    "CredentialStore",
    "Message",
    "MessageLog",
    "MessageStatus",
    "ProtocolError",
    "Role",
    "SessionAuthenticator",
    "StorageError",
    "StreamChatError",
    "StreamDecoder",
    "TransportError",
    "TransportKind",
    "TurnState",
    "create_credential_store",
    "create_transport",
]
