"""Factory for creating credential stores."""

from typing import Any

from .base import CredentialStore


def create_credential_store(
    backend: str = "memory",
    **kwargs: Any
) -> CredentialStore:
    """Create a credential store.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration
            For sqlite:
                - path: str | Path (default: ./credentials.db)

    Returns:
        CredentialStore instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryCredentialStore
        return InMemoryCredentialStore(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteCredentialStore
        return SQLiteCredentialStore(**kwargs)

    raise ValueError(
        f"Unsupported credential backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
