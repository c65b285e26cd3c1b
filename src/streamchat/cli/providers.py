"""Provider factory functions for CLI.

Centralizes creation of the backend client, credential store, transport and
engine from configuration. Hides wiring details from command implementations.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from ..auth import SessionAuthenticator
from ..client import BackendClient
from ..config import ClientConfig
from ..conversation import ConversationEngine
from ..credentials import CredentialStore, create_credential_store
from ..errors import StorageError
from ..transport import create_transport

logger = logging.getLogger(__name__)

# Default console for output
_console = Console()


def configure_logging(level: str = "WARNING", console: Console | None = None) -> None:
    """Route library logging through Rich at ``level``."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or _console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def get_config(**overrides: Any) -> ClientConfig:
    """Create client configuration from environment variables.

    Environment variables are documented on ClientConfig.from_env; explicit
    overrides (typically CLI flags) take precedence.
    """
    return ClientConfig.from_env(**overrides)


def get_credential_store(config: ClientConfig) -> CredentialStore:
    """Create the configured credential store (not yet connected)."""
    if config.credentials_backend == "sqlite":
        return create_credential_store("sqlite", path=config.credentials_path)
    return create_credential_store(config.credentials_backend)


async def connect_credential_store(config: ClientConfig) -> CredentialStore:
    """Connect the configured store, falling back to memory if it cannot be opened.

    Credentials then last only for this process, which costs one extra
    authentication on the next start.
    """
    store = get_credential_store(config)
    try:
        await store.connect()
    except StorageError as e:
        logger.warning("Credential storage unavailable, keeping credentials in memory: %s", e)
        store = create_credential_store("memory")
        await store.connect()
    return store


@asynccontextmanager
async def open_session(config: ClientConfig) -> AsyncIterator[ConversationEngine]:
    """Build a connected engine and tear everything down afterwards.

    Usage:
        async with open_session(config) as engine:
            await engine.send_message("hello")
    """
    client = BackendClient(config.base_url)
    store = await connect_credential_store(config)
    engine: ConversationEngine | None = None
    try:
        authenticator = SessionAuthenticator(
            store,
            client,
            user_id=config.user_id,
            password=config.password,
            refresh_margin=config.refresh_margin_seconds,
        )
        engine = ConversationEngine(
            authenticator,
            create_transport(config.transport, client),
            busy_policy=config.busy_policy,
            timeout=config.request_timeout_seconds,
            greeting=config.greeting,
        )
        yield engine
    finally:
        if engine is not None:
            await engine.close()
        await store.disconnect()
        await client.close()
