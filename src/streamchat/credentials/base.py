"""Abstract base class for credential storage backends.

The abstraction hides:
- Where the three credential slots live (memory, SQLite file)
- How they are written together so a partial credential is never observed
"""

from abc import ABC, abstractmethod

from .models import Credential


class CredentialStore(ABC):
    """Abstract credential store.

    ``load`` returns a complete Credential or None; a missing or corrupt slot
    counts as no credential. Failures of the underlying storage raise
    StorageError.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the storage backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the storage backend gracefully."""

    @abstractmethod
    async def load(self) -> Credential | None:
        """Retrieve the stored credential, or None if absent or incomplete."""

    @abstractmethod
    async def save(self, credential: Credential) -> None:
        """Persist all three slots of ``credential`` atomically."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove the stored credential."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "CredentialStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.disconnect()
