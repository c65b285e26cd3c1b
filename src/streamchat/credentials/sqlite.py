"""SQLite credential store.

Keeps the token, session id and expiry as three rows of a small key-value
table. Uses aiosqlite for async access; all three rows are written in one
transaction.
"""

import logging
from pathlib import Path

import aiosqlite

from ..config import SESSION_KEY, TOKEN_EXPIRY_KEY, TOKEN_KEY
from ..errors import StorageError
from .base import CredentialStore
from .models import Credential

logger = logging.getLogger(__name__)

_SLOTS = (TOKEN_KEY, SESSION_KEY, TOKEN_EXPIRY_KEY)


class SQLiteCredentialStore(CredentialStore):
    """SQLite-backed credential store.

    Survives process restarts, so a still-valid token is reused on the next
    start instead of authenticating again.
    """

    def __init__(self, path: str | Path = "./credentials.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database and create the key-value table."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self._db_path)
            await self._connection.execute("""
                CREATE TABLE IF NOT EXISTS credentials (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            await self._connection.commit()
        except (OSError, aiosqlite.Error) as e:
            raise StorageError(f"cannot open {self._db_path}: {e}") from e

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise StorageError("credential store is not connected")
        return self._connection

    async def load(self) -> Credential | None:
        conn = self._require_connection()
        placeholders = ", ".join("?" for _ in _SLOTS)
        try:
            async with conn.execute(
                f"SELECT key, value FROM credentials WHERE key IN ({placeholders})",
                _SLOTS
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(f"cannot read credentials: {e}") from e

        values = dict(rows)
        if any(not values.get(slot) for slot in _SLOTS):
            return None

        try:
            expires_at = int(values[TOKEN_EXPIRY_KEY])
        except ValueError:
            logger.warning("Stored token expiry %r is not an integer; ignoring credential",
                           values[TOKEN_EXPIRY_KEY])
            return None

        return Credential(
            token=values[TOKEN_KEY],
            session_id=values[SESSION_KEY],
            expires_at=expires_at,
        )

    async def save(self, credential: Credential) -> None:
        conn = self._require_connection()
        rows = [
            (TOKEN_KEY, credential.token),
            (SESSION_KEY, credential.session_id),
            (TOKEN_EXPIRY_KEY, str(credential.expires_at)),
        ]
        try:
            await conn.executemany(
                "INSERT OR REPLACE INTO credentials (key, value) VALUES (?, ?)",
                rows
            )
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            raise StorageError(f"cannot write credentials: {e}") from e

    async def clear(self) -> None:
        conn = self._require_connection()
        placeholders = ", ".join("?" for _ in _SLOTS)
        try:
            await conn.execute(
                f"DELETE FROM credentials WHERE key IN ({placeholders})",
                _SLOTS
            )
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            raise StorageError(f"cannot clear credentials: {e}") from e

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
