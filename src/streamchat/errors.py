"""Error taxonomy for the streaming chat client.

Each class maps to one failure domain so callers can decide how to surface
it: storage problems are recovered locally, authentication and transport
failures are shown to the user, protocol problems only drop a frame.
"""


class StreamChatError(Exception):
    """Base class for all client errors."""

    def is_retryable(self) -> bool:
        """Override in subclasses to control whether a retry is worth offering."""
        return False


class StorageError(StreamChatError):
    """Durable credential storage is unavailable or corrupt."""

    def __init__(self, message: str):
        super().__init__(f"Storage error: {message}")


class AuthenticationError(StreamChatError):
    """The backend rejected the client identity or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(f"Authentication failed: {message}")
        self.status_code = status_code

    def is_retryable(self) -> bool:
        # Explicit rejections (4xx) will not change on retry
        return self.status_code is None or self.status_code >= 500


class TransportError(StreamChatError):
    """Network failure or non-2xx response while streaming a reply."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(f"Transport error: {message}")
        self.status_code = status_code

    def is_retryable(self) -> bool:
        return True


class ProtocolError(StreamChatError):
    """A frame in the reply stream could not be understood."""

    def __init__(self, message: str, frame: str | None = None):
        super().__init__(f"Protocol error: {message}")
        self.frame = frame
