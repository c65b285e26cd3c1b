"""In-memory credential store.

Holds the credential for the lifetime of the process only.
Suitable for testing and for clients that re-authenticate on every start.
"""

from .base import CredentialStore
from .models import Credential


class InMemoryCredentialStore(CredentialStore):
    """Process-local credential store."""

    def __init__(self, credential: Credential | None = None):
        self._credential = credential

    async def connect(self) -> None:
        """No-op for in-memory storage."""
        pass

    async def disconnect(self) -> None:
        """No-op for in-memory storage."""
        pass

    async def load(self) -> Credential | None:
        return self._credential

    async def save(self, credential: Credential) -> None:
        self._credential = credential

    async def clear(self) -> None:
        self._credential = None

    @property
    def backend_type(self) -> str:
        return "memory"
